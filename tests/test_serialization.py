import copy
import json
import pickle
from pathlib import Path

import cloudpickle
import pytest

from arraybox import (
    MalformedSerializedStateError,
    Mode,
    OrderedContainer,
    ProtectedNameError,
    UnknownStrategyError,
    json_default,
    load_state,
    register_strategy,
    save_state,
)
from arraybox.iteration import SnapshotTraversal


def test_round_trip_restores_storage_mode_and_strategy():
    c = OrderedContainer({'a': [1, 2], 3: 'x'}, mode=Mode.STANDARD_PROPERTIES, iteration_strategy='reverse')
    restored = OrderedContainer.deserialize(c.serialize())

    assert restored.get_array_copy() == {'a': [1, 2], 3: 'x'}
    assert list(restored.keys()) == ['a', 3]
    assert restored.mode is Mode.STANDARD_PROPERTIES
    assert restored.iteration_strategy == 'reverse'
    assert restored.protected_names == c.protected_names


def test_round_trip_replays_dynamic_fields():
    c = OrderedContainer({'a': 1}, mode=Mode.STANDARD_PROPERTIES)
    c.note = 'hello'

    restored = OrderedContainer.deserialize(c.serialize())
    assert restored.note == 'hello'
    assert 'note' not in restored
    assert 'note' not in restored.protected_names


def test_unserialize_replaces_existing_state():
    source = OrderedContainer({'b': 2})
    target = OrderedContainer({'a': 1}, mode=Mode.STANDARD_PROPERTIES, iteration_strategy='reverse')
    target.stale = True

    target.unserialize(source.serialize())
    assert target.get_array_copy() == {'b': 2}
    assert target.mode is Mode.ARRAY_AS_PROPERTIES
    assert target.iteration_strategy == 'direct'
    assert 'stale' not in vars(target)


def test_fields_in_array_mode_are_replayed_into_storage():
    data = cloudpickle.dumps(
        {'storage': {'a': 1}, 'mode': 2, 'iteration_strategy': 'direct', 'fields': {'extra': 5}}
    )
    restored = OrderedContainer.deserialize(data)
    assert restored.get_array_copy() == {'a': 1, 'extra': 5}


def test_protected_fields_in_payload_are_rejected():
    data = cloudpickle.dumps(
        {'storage': {}, 'mode': 1, 'iteration_strategy': 'direct', 'fields': {'_storage': {'evil': 1}}}
    )
    c = OrderedContainer({'a': 1})
    with pytest.raises(ProtectedNameError):
        c.unserialize(data)
    # Nothing was applied
    assert c.get_array_copy() == {'a': 1}
    assert c.mode is Mode.ARRAY_AS_PROPERTIES


@pytest.mark.parametrize(
    'payload',
    [
        b'not a pickle',
        cloudpickle.dumps(['storage', 'mode']),
        cloudpickle.dumps({'storage': {}, 'mode': 2}),
        cloudpickle.dumps({'storage': {}, 'mode': 9, 'iteration_strategy': 'direct'}),
        cloudpickle.dumps({'storage': 5, 'mode': 2, 'iteration_strategy': 'direct'}),
        cloudpickle.dumps({'storage': {}, 'mode': 2, 'iteration_strategy': 'direct', 'fields': {1: 'x'}}),
    ],
)
def test_malformed_payloads_raise(payload: bytes):
    with pytest.raises(MalformedSerializedStateError):
        OrderedContainer.deserialize(payload)


def test_unresolvable_strategy_fails_deserialization():
    register_strategy('temporary', SnapshotTraversal)
    data = OrderedContainer([1], iteration_strategy='temporary').serialize()

    import arraybox.iteration.registry as registry

    registry._NAMESPACES[registry.PRIMARY_NAMESPACE].clear()  # pyright: ignore[reportPrivateUsage]
    with pytest.raises(UnknownStrategyError):
        OrderedContainer.deserialize(data)


def test_pickle_and_copy_use_state_record():
    c = OrderedContainer({'a': [1]}, iteration_strategy='snapshot')

    restored = pickle.loads(pickle.dumps(c))
    assert restored == c
    assert restored.iteration_strategy == 'snapshot'

    shallow = copy.copy(c)
    shallow['b'] = 2
    assert 'b' not in c

    deep = copy.deepcopy(c)
    deep['a'].append(2)
    assert c['a'] == [1]


def test_to_json_returns_storage_itself():
    c = OrderedContainer({'a': 1})
    assert c.to_json() == {'a': 1}
    c.to_json()['b'] = 2
    assert c['b'] == 2


def test_json_default_encodes_lists_and_objects():
    assert json.dumps(OrderedContainer([10, 20]), default=json_default) == '[10, 20]'
    assert json.dumps(OrderedContainer({'a': 1}), default=json_default) == '{"a": 1}'

    nested = OrderedContainer({'inner': OrderedContainer(['x'])})
    assert json.dumps(nested, default=json_default) == '{"inner": ["x"]}'

    with pytest.raises(TypeError):
        json.dumps(object(), default=json_default)


def test_save_and_load_state(tmp_path: Path):
    c = OrderedContainer({'a': 1}, iteration_strategy='reverse')
    state_file = save_state(c, tmp_path / 'states' / 'container.bin')
    assert state_file.exists()

    restored = load_state(state_file)
    assert restored.get_array_copy() == {'a': 1}
    assert restored.iteration_strategy == 'reverse'

    with pytest.raises(FileNotFoundError):
        load_state(tmp_path / 'missing.bin')
