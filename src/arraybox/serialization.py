from logging import getLogger
from os import PathLike
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, TypedDict

import cloudpickle as pickle  # pyright: ignore[reportMissingTypeStubs]

from arraybox.coercion import Key
from arraybox.errors import MalformedSerializedStateError

if TYPE_CHECKING:
    from arraybox.container import OrderedContainer

logger = getLogger(__name__)

RESERVED_KEYS = ('storage', 'mode', 'iteration_strategy')


class StateRecord(TypedDict):
    storage: dict[Key, Any]
    mode: int
    iteration_strategy: str
    #: Dynamic attributes, replayed through the attribute-write path.
    fields: dict[str, Any]
    #: Protected fields declared by subclasses, restored as-is.
    own_fields: dict[str, Any]


def encode_state(record: StateRecord) -> bytes:
    return pickle.dumps(record)


def decode_state(data: bytes) -> StateRecord:
    """Decode bytes produced by :func:`encode_state`.

    Raises
    ------
    MalformedSerializedStateError
        If ``data`` cannot be decoded or does not hold a state record.
    """
    try:
        record = pickle.loads(data)
    except Exception as exc:
        raise MalformedSerializedStateError('Serialized state could not be decoded') from exc
    return validate_state(record)


def _name_map(record: Mapping[str, Any], key: str) -> dict[str, Any]:
    names = record.get(key, {})
    if not isinstance(names, Mapping) or not all(isinstance(name, str) for name in names):  # pyright: ignore[reportUnknownVariableType]
        raise MalformedSerializedStateError(f'Serialized state {key} must map names to values')
    return dict(names)  # pyright: ignore[reportUnknownArgumentType]


def validate_state(record: Any) -> StateRecord:
    """Check that ``record`` has the shape of a :class:`StateRecord`.

    Only the shape is checked here; the container validates the values
    (mode, strategy identifier, storage, field names) before applying any
    of them. ``fields`` and ``own_fields`` are optional.
    """
    if not isinstance(record, Mapping):
        raise MalformedSerializedStateError(
            f'Serialized state must be a mapping, got {type(record).__name__}'
        )

    missing = [key for key in RESERVED_KEYS if key not in record]
    if missing:
        raise MalformedSerializedStateError(f'Serialized state is missing keys: {", ".join(missing)}')

    return StateRecord(
        storage=record['storage'],
        mode=record['mode'],
        iteration_strategy=record['iteration_strategy'],
        fields=_name_map(record, 'fields'),
        own_fields=_name_map(record, 'own_fields'),
    )


def json_default(obj: Any) -> Any:
    """``default`` hook for :func:`json.dumps` that encodes containers.

    A container whose keys are exactly ``0..n-1`` in order is encoded as a
    JSON array, any other container as a JSON object.

    Examples
    --------
    >>> json.dumps(OrderedContainer([1, 2]), default=json_default)
    '[1, 2]'
    """
    from arraybox.container import OrderedContainer

    if not isinstance(obj, OrderedContainer):
        raise TypeError(f'Object of type {type(obj).__name__} is not JSON serializable')

    storage = obj.to_json()
    if list(storage) == list(range(len(storage))):
        return list(storage.values())
    return storage


def save_state(container: 'OrderedContainer', state_file: str | PathLike[str] | Path) -> Path:
    state_file = Path(state_file)
    state_file.parent.mkdir(parents=True, exist_ok=True)
    with open(state_file, 'wb') as handle:
        handle.write(container.serialize())
    logger.info('Saved container state to %s', state_file)
    return state_file


def load_state[C: 'OrderedContainer'](
    state_file: str | PathLike[str] | Path, cls: type[C] | None = None
) -> C:
    """Restore a container previously written by :func:`save_state`.

    Parameters
    ----------
    state_file : str | PathLike[str] | Path
        Path of the state file.
    cls : type[OrderedContainer] | None, optional
        Container class to reconstruct, by default ``OrderedContainer``.

    Raises
    ------
    FileNotFoundError
        If ``state_file`` does not exist.
    MalformedSerializedStateError
        If the file does not hold a serialized container state.
    """
    from arraybox.container import OrderedContainer

    state_file = Path(state_file)
    if not state_file.exists():
        raise FileNotFoundError(f'State file not found: {state_file}')

    with open(state_file, 'rb') as handle:
        data = handle.read()

    container = (cls or OrderedContainer).deserialize(data)
    logger.info('Loaded container state from %s', state_file)
    return container  # type: ignore[return-value]
