from pathlib import Path
from typing import Any

import pytest

from arraybox import Mode, OrderedContainer, UnknownStrategyError
from arraybox.settings import (
    bind_settings,
    bind_settings_file,
    get_settings,
    load_settings_file,
    resolve_setting,
)


def test_resolve_precedence_and_key_error():
    settings: dict[str, Any] = {
        'container.mode': 1,
        'container': {'mode': 2, 'iteration_strategy': 'reverse'},
    }

    assert resolve_setting('container.mode', settings=settings) == 1
    assert resolve_setting('container.iteration_strategy', settings=settings) == 'reverse'
    assert resolve_setting('container.missing', 'fallback', settings=settings) == 'fallback'

    with pytest.raises(KeyError):
        resolve_setting('nope', settings={})


def test_get_settings_is_read_only():
    bind_settings(answer=42)
    settings = get_settings()
    assert settings['answer'] == 42
    with pytest.raises(TypeError):
        settings['answer'] = 0  # type: ignore[index]


def test_container_defaults_come_from_settings():
    bind_settings(container={'mode': 'standard_properties', 'iteration_strategy': 'snapshot'})
    c = OrderedContainer()
    assert c.mode is Mode.STANDARD_PROPERTIES
    assert c.iteration_strategy == 'snapshot'

    # Explicit arguments win
    c = OrderedContainer(mode=Mode.ARRAY_AS_PROPERTIES, iteration_strategy='direct')
    assert c.mode is Mode.ARRAY_AS_PROPERTIES
    assert c.iteration_strategy == 'direct'


def test_invalid_strategy_setting_raises():
    bind_settings(**{'container.iteration_strategy': 'nope'})
    with pytest.raises(UnknownStrategyError):
        OrderedContainer()


@pytest.mark.parametrize(
    'name, text',
    [
        ('settings.json', '{"container": {"mode": 1}}'),
        ('settings.yaml', 'container:\n  mode: 1\n'),
        ('settings.toml', '[container]\nmode = 1\n'),
    ],
)
def test_load_settings_files(tmp_path: Path, name: str, text: str):
    settings_file = tmp_path / name
    settings_file.write_text(text, encoding='utf-8')

    assert load_settings_file(settings_file) == {'container': {'mode': 1}}

    bind_settings_file(settings_file)
    assert OrderedContainer().mode is Mode.STANDARD_PROPERTIES


def test_load_settings_file_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_settings_file(tmp_path / 'missing.json')

    unsupported = tmp_path / 'settings.ini'
    unsupported.write_text('[container]', encoding='utf-8')
    with pytest.raises(RuntimeError):
        load_settings_file(unsupported)

    not_a_mapping = tmp_path / 'list.json'
    not_a_mapping.write_text('[1, 2]', encoding='utf-8')
    with pytest.raises(RuntimeError):
        load_settings_file(not_a_mapping)


def test_unsupported_suffix_is_reported_before_missing_file(tmp_path: Path):
    with pytest.raises(RuntimeError, match='Unsupported settings file type'):
        load_settings_file(tmp_path / 'missing.ini')

    upper = tmp_path / 'settings.YML'
    upper.write_text('container:\n  iteration_strategy: reverse\n', encoding='utf-8')
    assert load_settings_file(upper) == {'container': {'iteration_strategy': 'reverse'}}
