"""Property system modules.

- cacheable_object: Descriptor-driven objects with cached exposed properties
- composite: Step engine building one property from many steps
- validators: Validation predicates for update properties
- things: Wiki data types
"""

from hsmusic.data.cacheable_object import (
    MISSING,
    CacheableObject,
    ExposeSpec,
    PropertyAccessDiagnostics,
    PropertyDescriptor,
    PropertyFlags,
    UpdateSpec,
)

__all__ = [
    "MISSING",
    "CacheableObject",
    "ExposeSpec",
    "PropertyAccessDiagnostics",
    "PropertyDescriptor",
    "PropertyFlags",
    "UpdateSpec",
]
