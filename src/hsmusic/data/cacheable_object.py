"""Generally extendable base class for caching properties and handling dependencies.

Every property's behavior is defined by a descriptor stored on the class
(all instances share the same descriptors). A few key rules:

1. Properties may not be added after construction. Reading or writing a
   name with no descriptor raises UndeclaredPropertyError.

2. Properties carry two flags, update and expose. Update properties are
   provided values from outside; expose properties provide values to the
   outside, generally computed from update properties of the same object.
   A property may be both, so the same name serves as input and output.

3. An exposed property is computed by ``expose.compute`` from the
   properties it lists in ``expose.dependencies``. It may depend only on
   update properties of the same object, never on other exposed values.
   A property that both updates and exposes uses ``expose.transform``
   instead, which receives its own update value first.

4. Exposed values are cached. The cache is invalidated as soon as a
   dependency is written with a new value, and recomputed lazily on the
   next read.

5. Update writes may be checked by ``update.validate``, which must return
   exactly True or raise.

6. Incomplete objects are supported. Every update property defaults to
   None (or ``update.default``), and None always bypasses validation.
   MISSING is never a legal value.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Optional

from hsmusic.contracts import (
    InvalidValueError,
    PropertyValidationError,
    UndeclaredPropertyError,
    require,
)

__all__ = [
    'MISSING',
    'CacheableObject',
    'ExposeSpec',
    'PropertyAccessDiagnostics',
    'PropertyDescriptor',
    'PropertyFlags',
    'UpdateSpec',
]

logger = logging.getLogger(__name__)


class _MissingType:
    """Sentinel for "no value at all", distinct from None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _MissingType()

# Types compared by value when checking whether a write changes anything.
# Everything else is compared by identity.
_VALUE_TYPES = (str, bytes, int, float, bool, Decimal, date, datetime, time, timedelta)


@dataclass(frozen=True)
class PropertyFlags:
    """Which roles a property plays."""
    update: bool = False
    expose: bool = False


@dataclass(frozen=True)
class UpdateSpec:
    """Update half of a descriptor: validation and default value."""
    validate: Optional[Callable[[Any], Any]] = None
    default: Any = MISSING


@dataclass(frozen=True)
class ExposeSpec:
    """Expose half of a descriptor.

    ``compute(dependencies)`` is used for expose-only properties and
    ``transform(update_value, dependencies)`` for update+expose ones.
    With ``myself`` set, the owning object is also passed as the
    ``myself`` keyword argument.
    """
    dependencies: tuple[str, ...] = ()
    compute: Optional[Callable[..., Any]] = None
    transform: Optional[Callable[..., Any]] = None
    myself: bool = False

    def __post_init__(self):
        object.__setattr__(self, "dependencies", tuple(self.dependencies))


@dataclass(frozen=True)
class PropertyDescriptor:
    """Complete, class-level description of one property."""
    flags: PropertyFlags
    update: Optional[UpdateSpec] = None
    expose: Optional[ExposeSpec] = None

    @property
    def is_computed(self) -> bool:
        """True when reads go through compute/transform and the cache."""
        if self.expose is None:
            return False
        return bool(self.expose.compute or self.expose.transform)


class PropertyAccessDiagnostics:
    """Collects accesses to undeclared properties during one load run.

    Pass an instance to each CacheableObject constructor in the run; every
    read of a name without a descriptor is recorded as
    ``"(ClassName).name"`` before the error is raised. Use ``report()`` at
    the end of the run to log the unique accesses in one batch.
    """

    def __init__(self):
        self._invalid_accesses: dict[str, None] = {}

    def record_invalid_access(self, class_name: str, key: str) -> None:
        self._invalid_accesses[f"({class_name}).{key}"] = None

    @property
    def invalid_accesses(self) -> list[str]:
        """Unique invalid accesses, in the order they were first seen."""
        return list(self._invalid_accesses)

    def __len__(self) -> int:
        return len(self._invalid_accesses)

    def clear(self) -> None:
        self._invalid_accesses.clear()

    def report(self) -> int:
        """Log every recorded invalid access and return how many there were."""
        count = len(self._invalid_accesses)
        if not count:
            return 0

        logger.warning("%d unique invalid accesses:", count)
        for line in self._invalid_accesses:
            logger.warning(" - %s", line)
        return count


class _PropertyAccessor:
    """Class-level data descriptor routing attribute access to the object."""

    def __init__(self, name: str):
        self.name = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return obj._read_property(self.name)

    def __set__(self, obj, value):
        obj._write_property(self.name, value)

    def __delete__(self, obj):
        raise InvalidValueError(
            f"Property {self.name} of {type(obj).__name__} cannot be deleted"
        )

    def __repr__(self):
        return f"<property accessor {self.name!r}>"


def _same_value(old, new) -> bool:
    if old is new:
        return True
    if type(old) is type(new) and isinstance(new, _VALUE_TYPES):
        return old == new
    return False


class CacheableObject:
    """Base class for objects whose properties are defined by descriptors.

    Subclasses declare a ``property_descriptors`` mapping of property name
    to PropertyDescriptor. Accessors for every declared name are installed
    on the subclass when it is created; descriptors are checked the first
    time the subclass is instantiated.

    Example::

        class Point(CacheableObject):
            property_descriptors = {
                'x': PropertyDescriptor(
                    flags=PropertyFlags(update=True, expose=True),
                    update=UpdateSpec(validate=is_number, default=0)),
                'y': PropertyDescriptor(
                    flags=PropertyFlags(update=True, expose=True),
                    update=UpdateSpec(validate=is_number, default=0)),
                'norm': PropertyDescriptor(
                    flags=PropertyFlags(expose=True),
                    expose=ExposeSpec(
                        dependencies=['x', 'y'],
                        compute=lambda d: math.hypot(d['x'], d['y']))),
            }

        p = Point()
        p.x = 3
        p.y = 4
        p.norm  # 5.0, cached until x or y change
    """

    __slots__ = (
        "_update_values",
        "_cache_invalidators",
        "_cached_values",
        "_cache_valid",
        "_diagnostics",
    )

    property_descriptors: Optional[dict[str, PropertyDescriptor]] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        descriptors = cls.__dict__.get("property_descriptors")
        if descriptors is None:
            return

        for name in descriptors:
            require(
                not hasattr(CacheableObject, name),
                f"{cls.__name__}.{name} shadows a CacheableObject attribute"
            )
            setattr(cls, name, _PropertyAccessor(name))

    def __init__(self, diagnostics: Optional[PropertyAccessDiagnostics] = None):
        cls = type(self)
        _check_descriptors(cls)

        object.__setattr__(self, "_update_values", {})
        object.__setattr__(self, "_cache_invalidators", {})
        object.__setattr__(self, "_cached_values", {})
        object.__setattr__(self, "_cache_valid", {})
        object.__setattr__(self, "_diagnostics", diagnostics)

        self._register_cache_invalidators()
        self._initialize_update_values()

    def _register_cache_invalidators(self):
        for name, descriptor in type(self).property_descriptors.items():
            if not descriptor.is_computed:
                continue

            self._cache_valid[name] = False
            invalidate = partial(self._cache_valid.__setitem__, name, False)

            keys = set(descriptor.expose.dependencies)
            if descriptor.flags.update:
                keys.add(name)

            for key in keys:
                self._cache_invalidators.setdefault(key, []).append(invalidate)

    def _initialize_update_values(self):
        for name, descriptor in type(self).property_descriptors.items():
            if not descriptor.flags.update:
                continue

            default = descriptor.update.default if descriptor.update else MISSING
            self._write_property(name, None if default is MISSING else default)

    # Attribute protocol

    def __setattr__(self, name, value):
        descriptors = type(self).property_descriptors
        if name not in descriptors:
            raise UndeclaredPropertyError(type(self).__name__, name)
        object.__setattr__(self, name, value)

    def __delattr__(self, name):
        descriptors = type(self).property_descriptors
        if name not in descriptors:
            raise UndeclaredPropertyError(type(self).__name__, name)
        object.__delattr__(self, name)

    def __getattr__(self, name):
        # Only reached when normal lookup raises AttributeError.
        if name in CacheableObject.__slots__:
            raise AttributeError(name)

        if name in (type(self).property_descriptors or {}):
            # The accessor of a declared property raised; raise its error again.
            return self._read_property(name)

        if not (name.startswith("__") and name.endswith("__")):
            diagnostics = self._diagnostics
            if diagnostics is not None:
                diagnostics.record_invalid_access(type(self).__name__, name)

        raise UndeclaredPropertyError(type(self).__name__, name)

    # Property access

    def _write_property(self, name: str, value) -> None:
        descriptor = type(self).property_descriptors[name]

        if value is MISSING:
            raise InvalidValueError("Properties cannot be set to MISSING")

        if not descriptor.flags.update:
            raise AttributeError(
                f"Property {name} of {type(self).__name__} is not updatable"
            )

        old_value = self._update_values.get(name, MISSING)
        if _same_value(old_value, value):
            return

        validate = descriptor.update.validate if descriptor.update else None
        if value is not None and validate is not None:
            shown_old = None if old_value is MISSING else old_value
            try:
                result = validate(value)
            except Exception as exc:
                raise PropertyValidationError(name, shown_old, value, str(exc)) from exc

            if result is None:
                raise PropertyValidationError(
                    name, shown_old, value, "Validate function returned None")
            if result is not True:
                raise PropertyValidationError(
                    name, shown_old, value, f"Validation failed for value {value!r}")

        self._update_values[name] = value
        self._invalidate_caches_dependent_upon(name)

    def _invalidate_caches_dependent_upon(self, name: str) -> None:
        for invalidate in self._cache_invalidators.get(name, ()):
            invalidate()

    def _read_property(self, name: str):
        descriptor = type(self).property_descriptors[name]

        if not descriptor.flags.expose:
            raise AttributeError(
                f"Property {name} of {type(self).__name__} is not exposed"
            )

        if not descriptor.is_computed:
            return self._update_values[name]

        if self._cache_valid[name]:
            return self._cached_values[name]

        value = self._compute_property(name, descriptor)
        self._cached_values[name] = value
        self._cache_valid[name] = True
        return value

    def _compute_property(self, name: str, descriptor: PropertyDescriptor):
        expose = descriptor.expose
        dependencies = {key: self._update_values[key] for key in expose.dependencies}
        extra = {"myself": self} if expose.myself else {}

        if descriptor.flags.update:
            return expose.transform(self._update_values[name], dependencies, **extra)
        return expose.compute(dependencies, **extra)

    # Batch utilities

    @staticmethod
    def cache_all_exposed_properties(obj) -> None:
        """Force computation (and so caching) of every exposed property.

        Used to warm an object before serializing or snapshotting it.
        Non-CacheableObjects are skipped with a warning rather than failing.
        """
        if not isinstance(obj, CacheableObject):
            logger.warning("Not a CacheableObject: %r", obj)
            return

        descriptors = type(obj).property_descriptors
        if descriptors is None:
            logger.warning("Missing property descriptors: %r", obj)
            return

        for name, descriptor in descriptors.items():
            if descriptor.flags.expose:
                getattr(obj, name)

    @staticmethod
    def list_accessible_properties(obj: "CacheableObject") -> dict[str, bool]:
        """Map each exposed property to whether its dependencies are all set.

        A dependency counts as met when its update value is not None. An
        update+expose property without a transform depends on itself.
        """
        result = {}
        for name, descriptor in type(obj).property_descriptors.items():
            if not descriptor.flags.expose:
                continue

            keys = list(descriptor.expose.dependencies) if descriptor.expose else []
            if descriptor.flags.update and not descriptor.is_computed:
                keys.append(name)

            result[name] = all(obj._update_values.get(key) is not None for key in keys)

        return result


def _check_descriptors(cls) -> None:
    """Validate every descriptor on ``cls`` once, raising DefinitionError."""
    if "_descriptors_checked" in cls.__dict__:
        return

    descriptors = cls.property_descriptors
    require(
        descriptors is not None,
        f"Expected class {cls.__name__} to define property_descriptors"
    )

    for name, descriptor in descriptors.items():
        where = f"{cls.__name__}.{name}"
        require(
            isinstance(descriptor, PropertyDescriptor),
            f"{where}: expected a PropertyDescriptor, got {type(descriptor).__name__}"
        )

        flags, update, expose = descriptor.flags, descriptor.update, descriptor.expose
        require(flags.update or flags.expose, f"{where}: neither update nor expose flag set")
        require(flags.update or update is None, f"{where}: update block without update flag")
        require(flags.expose or expose is None, f"{where}: expose block without expose flag")

        if flags.update and expose is not None:
            require(
                expose.compute is None,
                f"Updating property {where} has compute function, should be formatted as transform"
            )

        if flags.expose and not flags.update:
            require(
                expose is not None and expose.compute is not None,
                f"Exposed property {where} does not update and is missing compute function"
            )
            require(
                expose.transform is None,
                f"Exposed property {where} does not update, so it can't have a transform"
            )

        if expose is not None:
            for dependency in expose.dependencies:
                target = descriptors.get(dependency)
                require(
                    target is not None,
                    f"{where}: depends on undeclared property {dependency!r}"
                )
                require(
                    target.flags.update,
                    f"{where}: depends on {dependency!r}, which doesn't update"
                )

    type.__setattr__(cls, "_descriptors_checked", True)
