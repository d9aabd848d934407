import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

type Key = int | str


def normalize_key(key: Any) -> Key:
    """Normalize ``key`` to a valid storage key.

    ``bool`` is folded into ``int``; ``int`` and ``str`` pass through
    unchanged. Numeric strings are kept as strings.

    Raises
    ------
    TypeError
        If ``key`` is of any other type.
    """
    if isinstance(key, bool):
        return int(key)
    if isinstance(key, (int, str)):
        return key
    raise TypeError(f'Illegal offset type: {type(key).__name__}')


def is_array_like(value: Any) -> bool:
    """Return whether ``value`` is array-like or object-like.

    Mappings, non-string iterables and objects carrying an instance
    ``__dict__`` qualify. Scalars, strings, bytes and ``None`` do not.
    """
    if value is None or isinstance(value, (str, bytes, bytearray, int, float, complex)):
        return False
    if isinstance(value, (Mapping, Iterable)):
        return True
    return hasattr(value, '__dict__')


def to_storage(value: Any) -> dict[Key, Any]:
    """Coerce arbitrary input into an ordered storage mapping.

    Parameters
    ----------
    value : Any
        ``None``, a scalar, a sequence or other iterable, a mapping, a
        dataclass or plain object, or another ``OrderedContainer``.

    Returns
    -------
    dict[Key, Any]
        A new dict. Containers are unwrapped to a copy of their storage
        rather than coerced again; iterables are enumerated from ``0``;
        scalars end up under key ``0``.
    """
    # Local import, the container module imports this one.
    from arraybox.container import OrderedContainer

    if value is None:
        return {}
    if isinstance(value, OrderedContainer):
        return value.get_array_copy()
    if isinstance(value, Mapping):
        return {normalize_key(k): v for k, v in value.items()}  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, (str, bytes, bytearray)):
        return {0: value}
    if isinstance(value, Iterable):
        return dict(enumerate(value))  # pyright: ignore[reportUnknownArgumentType]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: getattr(value, field.name) for field in dataclasses.fields(value)}
    if hasattr(value, '__dict__') and not callable(value):
        return dict(vars(value))
    return {0: value}
