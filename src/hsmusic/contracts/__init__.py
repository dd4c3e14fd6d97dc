"""Property system contracts: fail-fast enforcement and error types.

Key principle:
- Pydantic validates config correctness
- Contracts validate descriptor and composite correctness
- Validators decide whether source data is acceptable
"""

from hsmusic.contracts.failure import (
    CompositeInputError,
    DefinitionError,
    InvalidValueError,
    NotFoundMode,
    PropertyValidationError,
    UndeclaredPropertyError,
)
from hsmusic.contracts.base import require

__all__ = [
    "CompositeInputError",
    "DefinitionError",
    "InvalidValueError",
    "NotFoundMode",
    "PropertyValidationError",
    "UndeclaredPropertyError",
    "require",
]
