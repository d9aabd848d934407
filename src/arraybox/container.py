import inspect
from logging import getLogger
from typing import Any, Callable, Iterator, MutableMapping, Self

from arraybox.access import Mode, dispatcher_for
from arraybox.coercion import Key, is_array_like, normalize_key, to_storage
from arraybox.errors import InvalidInputError, MalformedSerializedStateError, ProtectedNameError
from arraybox.handle import SlotHandle
from arraybox.iteration.registry import DEFAULT_STRATEGY, resolve_strategy
from arraybox.iteration.strategies import IterationStrategy
from arraybox.serialization import StateRecord, decode_state, encode_state, validate_state
from arraybox.settings import resolve_setting
from arraybox.sorting import SortFlag, comparator_key, natural_key, sort_key

logger = getLogger(__name__)

_INTERNAL_FIELDS = frozenset(
    {'_storage', '_mode', '_iteration_strategy', '_protected_names', '_generation', '_next_index'}
)


def _is_dunder(name: str) -> bool:
    return name.startswith('__') and name.endswith('__')


class OrderedContainer(MutableMapping[Key, Any]):
    """
    Ordered key/value container with array semantics.

    Keys are integers or strings and keep their insertion order. The
    container can be used as a mapping (``c[key]``), an iterable, a
    countable collection and a JSON value (see :meth:`to_json`).

    Dynamic attribute access (``c.name``, ``c.name = value``,
    ``del c.name``) depends on the mode:

    - ``Mode.ARRAY_AS_PROPERTIES`` redirects it to the storage, so
      ``c.name`` reads ``c.get('name')``.
    - ``Mode.STANDARD_PROPERTIES`` keeps it on the object itself, but any
      name in :attr:`protected_names` raises ``ProtectedNameError``.

    Names found on the class (methods, properties) and dunder names are never
    dispatched.

    Parameters
    ----------
    data : Any, optional
        Initial content, coerced with :func:`arraybox.coercion.to_storage`.
    mode : Mode | int | str | None, optional
        Attribute access mode. Defaults to the ``container.mode`` setting,
        or ``Mode.ARRAY_AS_PROPERTIES``.
    iteration_strategy : str | type[IterationStrategy] | None, optional
        Registered iteration strategy. Defaults to the
        ``container.iteration_strategy`` setting, or ``'direct'``.

    Notes
    -----
    ``protected_names`` is a snapshot taken at the end of construction: the
    instance attributes set so far plus the annotated attributes of every
    class in the MRO. Subclasses add protected fields by annotating them or
    by setting them before calling ``super().__init__()``.

    Not safe for concurrent mutation; synchronize externally.

    Examples
    --------
    >>> c = OrderedContainer({'a': 1, 'b': 2})
    >>> c.append(3)
    >>> c.get_array_copy()
    {'a': 1, 'b': 2, 2: 3}
    >>> c.a
    1
    """

    _storage: dict[Key, Any]
    _mode: Mode
    _iteration_strategy: str
    _protected_names: frozenset[str]
    _generation: int
    _next_index: int | None

    def __init__(
        self,
        data: Any = None,
        mode: Mode | int | str | None = None,
        iteration_strategy: str | type[IterationStrategy] | None = None,
    ) -> None:
        self._initialize_internals()
        if mode is None:
            mode = resolve_setting('container.mode', Mode.ARRAY_AS_PROPERTIES)
        if iteration_strategy is None:
            iteration_strategy = resolve_setting('container.iteration_strategy', DEFAULT_STRATEGY)

        self.set_mode(mode)
        self._assign('_storage', to_storage(data))
        self.set_iteration_strategy(iteration_strategy)
        self._assign('_protected_names', self._snapshot_protected_names())

    def _initialize_internals(self) -> None:
        # Use object.__setattr__ to avoid dispatching into __setattr__.
        object.__setattr__(self, '_storage', {})
        object.__setattr__(self, '_mode', Mode.ARRAY_AS_PROPERTIES)
        object.__setattr__(self, '_iteration_strategy', DEFAULT_STRATEGY)
        object.__setattr__(self, '_generation', 0)
        object.__setattr__(self, '_next_index', None)

    def _assign(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    def _snapshot_protected_names(self, exclude: frozenset[str] = frozenset()) -> frozenset[str]:
        names = {name for name in vars(self) if name not in exclude}
        for klass in type(self).__mro__:
            names.update(inspect.get_annotations(klass))
        names.add('_protected_names')
        return frozenset(names)

    def _structure_changed(self) -> None:
        self._assign('_generation', self._generation + 1)

    def _current_generation(self) -> int:
        return self._generation

    @property
    def protected_names(self) -> frozenset[str]:
        return self._protected_names

    # Dynamic attribute access

    def has_field(self, name: str) -> bool:
        return dispatcher_for(self._mode).has(self, name)

    def get_field(self, name: str) -> Any:
        return dispatcher_for(self._mode).get(self, name)

    def set_field(self, name: str, value: Any) -> None:
        dispatcher_for(self._mode).set(self, name, value)

    def remove_field(self, name: str) -> None:
        dispatcher_for(self._mode).delete(self, name)

    def __getattr__(self, name: str) -> Any:
        # Only reached when regular lookup fails.
        if _is_dunder(name) or '_protected_names' not in vars(self):
            raise AttributeError(f'{type(self).__name__!r} object has no attribute {name!r}')
        return self.get_field(name)

    def __setattr__(self, name: str, value: Any) -> None:
        descriptor = getattr(type(self), name, None)
        if hasattr(descriptor, '__set__') or _is_dunder(name) or '_protected_names' not in vars(self):
            object.__setattr__(self, name, value)
            return
        self.set_field(name, value)

    def __delattr__(self, name: str) -> None:
        descriptor = getattr(type(self), name, None)
        if hasattr(descriptor, '__delete__') or _is_dunder(name):
            object.__delattr__(self, name)
            return
        self.remove_field(name)

    # Key-level access

    def exists(self, key: Any) -> bool:
        if not isinstance(key, (int, str)):
            return False
        return normalize_key(key) in self._storage

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the value stored at ``key``, or ``default``; never creates ``key``."""
        if not self.exists(key):
            return default
        return self._storage[normalize_key(key)]

    def slot(self, key: Any) -> SlotHandle:
        """Return an aliasable handle to the slot at ``key``.

        The handle is valid until the next structural mutation of the
        container; see :class:`~arraybox.handle.SlotHandle`.
        """
        return SlotHandle(self, key, self._current_generation)

    def set(self, key: Any, value: Any) -> None:
        """Store ``value`` at ``key``; a ``None`` key appends.

        Appended values get the integer key one greater than the largest
        integer key currently present (``0`` if there is none). Existing keys
        keep their position, new keys go to the end.
        """
        key = self._next_free_index() if key is None else normalize_key(key)

        if key not in self._storage:
            self._structure_changed()
            if isinstance(key, int) and self._next_index is not None:
                self._assign('_next_index', max(self._next_index, key + 1))

        self._storage[key] = value

    def append(self, value: Any) -> None:
        self.set(None, value)

    def delete(self, key: Any) -> None:
        """Remove ``key`` if present; absent keys are ignored."""
        if self.exists(key):
            del self[key]

    def _next_free_index(self) -> int:
        if self._next_index is None:
            largest = max((key for key in self._storage if isinstance(key, int)), default=-1)
            self._assign('_next_index', max(largest + 1, 0))
        return self._next_index  # type: ignore[return-value]

    def __getitem__(self, key: Key) -> Any:
        return self._storage[normalize_key(key)]

    def __setitem__(self, key: Key | None, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Key) -> None:
        del self._storage[normalize_key(key)]
        self._assign('_next_index', None)
        self._structure_changed()

    def __contains__(self, key: object) -> bool:
        return self.exists(key)

    def __iter__(self) -> Iterator[Key]:
        return iter(self._storage)

    def __len__(self) -> int:
        return len(self._storage)

    def count(self) -> int:
        return len(self._storage)

    def clear(self) -> None:
        if self._storage:
            self._storage.clear()
            self._assign('_next_index', None)
            self._structure_changed()

    def get_array_copy(self) -> dict[Key, Any]:
        """Return a shallow copy of the storage."""
        return dict(self._storage)

    def exchange_array(self, data: Any) -> dict[Key, Any]:
        """Replace the storage wholesale and return the previous one.

        Raises
        ------
        InvalidInputError
            If ``data`` is neither array-like nor object-like.
        """
        if not is_array_like(data):
            raise InvalidInputError(
                f'Passed variable is not an array or object: {type(data).__name__}'
            )

        previous = self._storage
        self._assign('_storage', to_storage(data))
        self._assign('_next_index', None)
        self._structure_changed()
        logger.debug('Exchanged storage of %d entries for %d entries', len(previous), len(self._storage))
        return previous

    # Mode and iteration strategy

    @property
    def mode(self) -> Mode:
        return self._mode

    @mode.setter
    def mode(self, mode: Mode | int | str) -> None:
        self.set_mode(mode)

    def get_mode(self) -> Mode:
        return self._mode

    def set_mode(self, mode: Mode | int | str) -> None:
        self._assign('_mode', Mode.parse(mode))
        logger.debug('Container mode set to %s', self._mode.name)

    @property
    def iteration_strategy(self) -> str:
        return self._iteration_strategy

    @iteration_strategy.setter
    def iteration_strategy(self, identifier: str | type[IterationStrategy]) -> None:
        self.set_iteration_strategy(identifier)

    def get_iteration_strategy(self) -> str:
        return self._iteration_strategy

    def set_iteration_strategy(self, identifier: str | type[IterationStrategy]) -> None:
        """Select the iteration strategy used by :meth:`get_iterator`.

        Raises
        ------
        UnknownStrategyError
            If ``identifier`` resolves neither in the primary namespace nor
            in the builtin fallback namespace.
        """
        entry = resolve_strategy(identifier)
        self._assign('_iteration_strategy', entry.identifier)
        logger.debug('Iteration strategy set to %s (%s namespace)', entry.identifier, entry.namespace)

    # Iteration

    def get_iterator(self) -> Iterator[tuple[Key, SlotHandle]]:
        """Yield ``(key, handle)`` pairs in the order of the iteration strategy.

        With the default ``'direct'`` strategy the handles write through to
        this container. Any other strategy walks a detached view, and writes
        through its handles only change that view.

        Each call starts a fresh, one-shot traversal of the current state.
        Adding or removing keys during a ``'direct'`` traversal raises
        ``RuntimeError``.
        """
        strategy = resolve_strategy(self._iteration_strategy).create(self)
        generation_of = self._current_generation if strategy.live else None
        for key in strategy:
            yield key, SlotHandle(strategy.view, key, generation_of)

    def iterate(self) -> Iterator[tuple[Key, Any]]:
        for key, handle in self.get_iterator():
            yield key, handle.value

    # Sorting

    def _reorder(self, items: list[tuple[Key, Any]]) -> Self:
        self._storage.clear()
        self._storage.update(items)
        return self

    def _reindex(self, values: list[Any]) -> Self:
        self._storage.clear()
        self._storage.update(enumerate(values))
        self._assign('_next_index', len(values))
        self._structure_changed()
        return self

    def sort_by_value(self, flags: SortFlag | int | None = None) -> Self:
        """Sort by value, keeping each key with its value."""
        key = sort_key(flags)
        return self._reorder(sorted(self._storage.items(), key=lambda item: key(item[1])))

    def sort_by_key(self, flags: SortFlag | int | None = None) -> Self:
        key = sort_key(flags)
        return self._reorder(sorted(self._storage.items(), key=lambda item: key(item[0])))

    def sort_by_key_descending(self, flags: SortFlag | int | None = None) -> Self:
        key = sort_key(flags)
        return self._reorder(
            sorted(self._storage.items(), key=lambda item: key(item[0]), reverse=True)
        )

    def sort_values(self, flags: SortFlag | int | None = None) -> Self:
        """Sort by value, discarding keys and reindexing from 0."""
        return self._reindex(sorted(self._storage.values(), key=sort_key(flags)))

    def sort_values_descending(self, flags: SortFlag | int | None = None) -> Self:
        return self._reindex(sorted(self._storage.values(), key=sort_key(flags), reverse=True))

    def sort_by_key_with(self, comparator: Callable[[Any, Any], int]) -> Self:
        """Sort by key with a ``cmp(a, b) -> int`` comparator, keeping keys."""
        key = comparator_key(comparator)
        return self._reorder(sorted(self._storage.items(), key=lambda item: key(item[0])))

    def sort_by_value_with(self, comparator: Callable[[Any, Any], int]) -> Self:
        key = comparator_key(comparator)
        return self._reorder(sorted(self._storage.items(), key=lambda item: key(item[1])))

    def natural_sort(self, case_insensitive: bool = False) -> Self:
        """Sort values in natural order (``'img2'`` before ``'img10'``), keeping keys."""
        return self._reorder(
            sorted(self._storage.items(), key=lambda item: natural_key(item[1], case_insensitive))
        )

    # Serialization

    def _state_record(self) -> StateRecord:
        return StateRecord(
            storage=dict(self._storage),
            mode=int(self._mode),
            iteration_strategy=self._iteration_strategy,
            fields={
                name: value for name, value in vars(self).items() if name not in self._protected_names
            },
            own_fields={
                name: value
                for name, value in vars(self).items()
                if name in self._protected_names and name not in _INTERNAL_FIELDS
            },
        )

    def serialize(self) -> bytes:
        """Encode storage, mode, iteration strategy, subclass fields and dynamic fields."""
        return encode_state(self._state_record())

    def unserialize(self, data: bytes) -> None:
        """Replace this container's state with serialized ``data``.

        Raises
        ------
        MalformedSerializedStateError
            If ``data`` does not decode to a valid state record.
        UnknownStrategyError
            If the recorded iteration strategy is not registered.
        ProtectedNameError
            If a recorded field targets a protected name.
        """
        self._restore(decode_state(data))

    @classmethod
    def deserialize(cls, data: bytes) -> Self:
        instance = cls.__new__(cls)
        instance.unserialize(data)
        return instance

    def _restore(self, record: StateRecord) -> None:
        if '_generation' not in vars(self):
            self._initialize_internals()

        # Dynamic fields of the current state are dropped, not merged.
        dynamic = frozenset(vars(self)) - vars(self).get('_protected_names', frozenset(vars(self)))
        own_fields = record['own_fields']
        protected = self._snapshot_protected_names(exclude=dynamic) | frozenset(own_fields)

        # Validate everything before touching any state.
        for name in own_fields:
            if name in _INTERNAL_FIELDS or _is_dunder(name):
                raise MalformedSerializedStateError(f'Serialized state cannot restore field "{name}"')
        try:
            mode = Mode.parse(record['mode'])
        except (TypeError, ValueError) as exc:
            raise MalformedSerializedStateError(f'Invalid mode in serialized state: {record["mode"]!r}') from exc
        if not is_array_like(record['storage']):
            raise MalformedSerializedStateError('Serialized storage is not array-like')
        resolve_strategy(record['iteration_strategy'])
        if mode == Mode.STANDARD_PROPERTIES:
            for name in record['fields']:
                if name in protected or _is_dunder(name) or hasattr(type(self), name):
                    raise ProtectedNameError(name)

        for name in dynamic:
            object.__delattr__(self, name)
        for name, value in own_fields.items():
            self._assign(name, value)
        self._assign('_protected_names', protected)
        self.set_mode(mode)
        self.exchange_array(record['storage'])
        self.set_iteration_strategy(record['iteration_strategy'])
        for name, value in record['fields'].items():
            self.set_field(name, value)

    def __getstate__(self) -> StateRecord:
        return self._state_record()

    def __setstate__(self, state: Any) -> None:
        self._restore(validate_state(state))

    def to_json(self) -> dict[Key, Any]:
        """Return the storage itself, for JSON encoding."""
        return self._storage

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._storage!r})'
