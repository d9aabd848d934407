from enum import IntEnum
from typing import TYPE_CHECKING, Any, Protocol

from arraybox.errors import ProtectedNameError

if TYPE_CHECKING:
    from arraybox.container import OrderedContainer


class Mode(IntEnum):
    """Behavior of dynamic attribute access on a container."""

    #: Dynamic attributes are genuine attributes of the container object.
    STANDARD_PROPERTIES = 1
    #: Dynamic attributes are entries of the container's storage.
    ARRAY_AS_PROPERTIES = 2

    @classmethod
    def parse(cls, value: 'Mode | int | str') -> 'Mode':
        """Build a ``Mode`` from a member, its value or its (case-insensitive) name."""
        if isinstance(value, str) and not value.isdigit():
            try:
                return cls[value.upper()]
            except KeyError:
                raise ValueError(f'{value!r} is not a valid {cls.__name__}') from None
        if isinstance(value, str):
            value = int(value)
        if not isinstance(value, int):
            raise TypeError(
                f'{cls.__name__} must be a member, an int or a name, got {type(value).__name__}'
            )
        return cls(value)


class AttributeAccess(Protocol):
    """Resolves the four dynamic attribute operations for a container."""

    def has(self, container: 'OrderedContainer', name: str) -> bool: ...
    def get(self, container: 'OrderedContainer', name: str) -> Any: ...
    def set(self, container: 'OrderedContainer', name: str, value: Any) -> None: ...
    def delete(self, container: 'OrderedContainer', name: str) -> None: ...


class RedirectToStorage:
    """Forwards dynamic attribute access to the container's storage."""

    def has(self, container: 'OrderedContainer', name: str) -> bool:
        return container.exists(name)

    def get(self, container: 'OrderedContainer', name: str) -> Any:
        return container.get(name)

    def set(self, container: 'OrderedContainer', name: str, value: Any) -> None:
        container.set(name, value)

    def delete(self, container: 'OrderedContainer', name: str) -> None:
        container.delete(name)


class DirectAttribute:
    """Applies dynamic attribute access to the container's own namespace.

    Dunder names, names found on the container class (methods, properties)
    and names in the container's protected set are rejected with
    :class:`~arraybox.errors.ProtectedNameError`. Missing attributes read as
    ``None`` and deleting them is a no-op.
    """

    def has(self, container: 'OrderedContainer', name: str) -> bool:
        _ensure_unprotected(container, name)
        return name in vars(container)

    def get(self, container: 'OrderedContainer', name: str) -> Any:
        _ensure_unprotected(container, name)
        return vars(container).get(name)

    def set(self, container: 'OrderedContainer', name: str, value: Any) -> None:
        _ensure_unprotected(container, name)
        object.__setattr__(container, name, value)

    def delete(self, container: 'OrderedContainer', name: str) -> None:
        _ensure_unprotected(container, name)
        if name in vars(container):
            object.__delattr__(container, name)


def _ensure_unprotected(container: 'OrderedContainer', name: str) -> None:
    if (
        name in container.protected_names
        or (name.startswith('__') and name.endswith('__'))
        or hasattr(type(container), name)
    ):
        raise ProtectedNameError(name)


_DISPATCHERS: dict[Mode, AttributeAccess] = {
    Mode.STANDARD_PROPERTIES: DirectAttribute(),
    Mode.ARRAY_AS_PROPERTIES: RedirectToStorage(),
}


def dispatcher_for(mode: Mode) -> AttributeAccess:
    return _DISPATCHERS[mode]
