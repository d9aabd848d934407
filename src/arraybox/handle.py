from collections.abc import MutableMapping
from typing import Any, Callable

from arraybox.coercion import Key, normalize_key
from arraybox.errors import StaleHandleError


class SlotHandle:
    """Aliasable reference to a single slot of a mapping.

    Reading ``value`` returns the stored object itself, so mutable values
    alias the slot directly; assigning ``value`` writes back into the target
    mapping. Reading a missing slot yields ``None`` and never creates the key,
    while assigning through the handle writes the key explicitly.

    Invalidation
    ------------
    A handle bound to a container records the container's generation when it
    is created. After any structural mutation of the container (a new key,
    a deleted key, an exchanged storage or a reindexing sort) every access
    raises :class:`~arraybox.errors.StaleHandleError`. Writes made through
    the handle itself refresh the recorded generation. Handles over detached
    views (``generation_of is None``) are never invalidated.

    Parameters
    ----------
    target : MutableMapping[Key, Any]
        The mapping holding the slot.
    key : Key
        The slot's key.
    generation_of : Callable[[], int] | None, optional
        Returns the target's current generation.
    """

    __slots__ = ('_target', '_key', '_generation_of', '_generation')

    def __init__(
        self,
        target: MutableMapping[Key, Any],
        key: Any,
        generation_of: Callable[[], int] | None = None,
    ) -> None:
        self._target = target
        self._key = normalize_key(key)
        self._generation_of = generation_of
        self._generation = generation_of() if generation_of is not None else None

    @property
    def key(self) -> Key:
        return self._key

    @property
    def exists(self) -> bool:
        self._ensure_valid()
        return self._key in self._target

    @property
    def value(self) -> Any:
        self._ensure_valid()
        try:
            return self._target[self._key]
        except KeyError:
            return None

    @value.setter
    def value(self, value: Any) -> None:
        self._ensure_valid()
        self._target[self._key] = value
        self._sync()

    def delete(self) -> None:
        """Remove the slot from the target; no-op if already absent."""
        self._ensure_valid()
        if self._key in self._target:
            del self._target[self._key]
        self._sync()

    def _sync(self) -> None:
        if self._generation_of is not None:
            self._generation = self._generation_of()

    def _ensure_valid(self) -> None:
        if self._generation_of is not None and self._generation_of() != self._generation:
            raise StaleHandleError(
                f'Handle for key {self._key!r} was invalidated by a structural mutation'
            )

    def __repr__(self) -> str:
        return f'{type(self).__name__}(key={self._key!r})'
