import re
from enum import IntFlag
from functools import cmp_to_key
from numbers import Number
from typing import Any, Callable

_NUMERIC_PREFIX = re.compile(r'\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')
_DIGIT_RUNS = re.compile(r'(\d+)')


class SortFlag(IntFlag):
    """Comparison modes accepted by the flag-driven sorts."""

    REGULAR = 0
    NUMERIC = 1
    STRING = 2
    NATURAL = 6
    FLAG_CASE = 8


def regular_key(value: Any) -> tuple[int, Any]:
    # None < numbers < strings < everything else; native order within a group.
    if value is None:
        return (0, 0)
    if isinstance(value, Number) and not isinstance(value, complex):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, value)


def numeric_key(value: Any) -> float:
    """Return the numeric value of ``value``'s leading numeric prefix, or 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMERIC_PREFIX.match(str(value))
    return float(match.group()) if match else 0.0


def natural_key(value: Any, case_insensitive: bool = False) -> list[int | str]:
    """Split ``str(value)`` into alternating text and integer chunks.

    Comparing the resulting lists orders ``"img2"`` before ``"img10"``.
    Chunks alternate text/number from a leading (possibly empty) text chunk,
    so lists are always comparable position by position.
    """
    text = str(value).lstrip()
    if case_insensitive:
        text = text.lower()
    return [int(chunk) if i % 2 else chunk for i, chunk in enumerate(_DIGIT_RUNS.split(text))]


def sort_key(flags: SortFlag | int | None = None) -> Callable[[Any], Any]:
    """Return the key function implementing ``flags``.

    ``None`` is treated as ``SortFlag.REGULAR``. ``FLAG_CASE`` only has an
    effect combined with ``STRING`` or ``NATURAL``.
    """
    if flags is None:
        flags = 0
    if not isinstance(flags, int):
        raise TypeError(f'Sort flags must be an int, got {type(flags).__name__}')
    flags = SortFlag(flags)
    case_insensitive = SortFlag.FLAG_CASE in flags
    base = SortFlag(int(flags) & ~int(SortFlag.FLAG_CASE))

    match base:
        case SortFlag.NATURAL:
            return lambda value: natural_key(value, case_insensitive)
        case SortFlag.STRING:
            if case_insensitive:
                return lambda value: str(value).lower()
            return str
        case SortFlag.NUMERIC:
            return numeric_key
        case SortFlag.REGULAR:
            return regular_key
        case _:
            raise ValueError(f'Unsupported sort flags: {flags!r}')


def comparator_key(comparator: Callable[[Any, Any], int]) -> Callable[[Any], Any]:
    """Wrap a ``cmp(a, b) -> int`` callable into a sort key."""
    return cmp_to_key(comparator)
