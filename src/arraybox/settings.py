import json
from logging import getLogger
from os import PathLike
from pathlib import Path
from types import MappingProxyType
import tomllib
from typing import Any, Callable, Mapping, cast

import yaml

logger = getLogger(__name__)

_SETTINGS: dict[str, Any] = {}
_MISSING: Any = object()


def bind_settings(**kwargs: Any) -> None:
    """Bind settings values consulted by newly constructed containers.

    Values are merged into the module-level settings context; existing keys
    are overwritten. Keys may be flat dotted names (``'container.mode'``) or
    nested mappings (``container={'mode': 1}``).
    """
    logger.debug('Binding settings: %s', sorted(kwargs))
    _SETTINGS.update(kwargs)


def clear_settings() -> None:
    _SETTINGS.clear()


def get_settings() -> Mapping[str, Any]:
    """Return a read-only view of the bound settings."""
    return MappingProxyType(_SETTINGS)


def resolve_setting(key: str, default: Any = _MISSING, *, settings: Mapping[str, Any] | None = None) -> Any:
    """Resolve a settings value by dotted key.

    Flat keys win over nested ones: for ``'container.mode'`` the key
    ``'container.mode'`` is tried before ``settings['container']['mode']``.

    Parameters
    ----------
    key : str
        The dotted settings key.
    default : Any, optional
        Returned when no value is found. When omitted a ``KeyError`` is
        raised instead.
    settings : Mapping[str, Any] | None, optional
        The mapping to search, by default the bound settings.

    Raises
    ------
    KeyError
        If the key is missing and no default was given.
    """
    if settings is None:
        settings = get_settings()

    if key in settings:
        return settings[key]

    collection, _, rest = key.partition('.')
    if rest and isinstance(settings.get(collection), Mapping):
        return resolve_setting(rest, default, settings=settings[collection])

    if default is _MISSING:
        raise KeyError(f'No setting value for {key}')
    return default


_PARSERS: dict[str, Callable[[str], Any]] = {
    '.json': json.loads,
    '.yaml': yaml.safe_load,
    '.yml': yaml.safe_load,
    '.toml': tomllib.loads,
}


def load_settings_file(path: str | PathLike[str] | Path) -> Mapping[str, Any]:
    """Load a settings mapping from a file, picking the parser by suffix.

    Raises
    ------
    RuntimeError
        If the suffix is not one of ``.json``, ``.yaml``, ``.yml`` or
        ``.toml``, or the file does not hold a mapping.
    FileNotFoundError
        If ``path`` does not exist.
    """
    path = Path(path)
    parse = _PARSERS.get(path.suffix.lower())
    if parse is None:
        raise RuntimeError(
            f'Unsupported settings file type: {path.suffix}, supported extensions: {", ".join(_PARSERS)}'
        )
    if not path.exists():
        raise FileNotFoundError(f'Settings file not found: {path}')

    settings = parse(path.read_text(encoding='utf-8'))
    if not isinstance(settings, Mapping):
        raise RuntimeError(f'Settings file {path} must contain a mapping at the top level')

    logger.debug('Loaded settings file %s', path)
    return cast(Mapping[str, Any], settings)


def bind_settings_file(path: str | PathLike[str] | Path) -> None:
    """Load a settings file and bind its top-level values."""
    bind_settings(**load_settings_file(path))
