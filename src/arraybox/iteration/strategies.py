from abc import ABC, abstractmethod
from typing import Any, Iterator, Mapping, MutableMapping

from arraybox.coercion import Key
from arraybox.sorting import regular_key


class IterationStrategy(ABC):
    """Traversal algorithm used by ``OrderedContainer.get_iterator``.

    A strategy is constructed with the container (a mapping) and exposes the
    mapping it walks as ``view``. By default the view is a detached snapshot,
    so writes made through the yielded handles do not reach the container.
    Strategies that walk the container live override :meth:`prepare`.

    Subclasses may also transform the snapshot in :meth:`prepare`, e.g. to
    drop or rewrite entries.
    """

    #: Whether ``view`` is the container itself rather than a snapshot.
    live: bool = False

    view: MutableMapping[Key, Any]

    def __init__(self, storage: Mapping[Key, Any]) -> None:
        self.view = self.prepare(storage)

    def prepare(self, storage: Mapping[Key, Any]) -> MutableMapping[Key, Any]:
        return dict(storage)

    @abstractmethod
    def __iter__(self) -> Iterator[Key]:
        """Yield the keys of ``view`` in traversal order."""
        raise NotImplementedError()


class DirectTraversal(IterationStrategy):
    """Walks the container itself in insertion order."""

    live = True

    def prepare(self, storage: Mapping[Key, Any]) -> MutableMapping[Key, Any]:
        if not isinstance(storage, MutableMapping):
            raise TypeError('Direct traversal requires a mutable mapping')
        return storage

    def __iter__(self) -> Iterator[Key]:
        return iter(self.view)


class SnapshotTraversal(IterationStrategy):
    """Walks a copy of the storage in insertion order."""

    def __iter__(self) -> Iterator[Key]:
        return iter(self.view)


class ReverseTraversal(IterationStrategy):
    def __iter__(self) -> Iterator[Key]:
        return reversed(list(self.view))


class SortedKeyTraversal(IterationStrategy):
    """Walks a copy of the storage ordered by key."""

    def __iter__(self) -> Iterator[Key]:
        return iter(sorted(self.view, key=regular_key))
