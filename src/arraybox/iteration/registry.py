from dataclasses import dataclass
from logging import getLogger
from typing import Any, Callable, List, Mapping

from dependency_injector import providers

from arraybox.coercion import Key
from arraybox.errors import StrategyRegistrationError, UnknownStrategyError
from arraybox.iteration.strategies import (
    DirectTraversal,
    IterationStrategy,
    ReverseTraversal,
    SnapshotTraversal,
    SortedKeyTraversal,
)

logger = getLogger(__name__)

PRIMARY_NAMESPACE = 'primary'
FALLBACK_NAMESPACE = 'builtin'
DEFAULT_STRATEGY = 'direct'


@dataclass(frozen=True)
class StrategyEntry:
    """Registry record for a single iteration strategy.

    Attributes
    ----------
    identifier:
        The name containers store and serialize.
    namespace:
        The registry namespace the entry lives in.
    provider:
        A ``dependency_injector`` provider building the strategy from a
        storage mapping.
    strategy_class:
        The concrete class the provider builds, when it can be determined.
    """

    identifier: str
    namespace: str
    provider: providers.Provider
    strategy_class: type[IterationStrategy] | None

    def create(self, storage: Mapping[Key, Any]) -> IterationStrategy:
        strategy = self.provider(storage)
        if not isinstance(strategy, IterationStrategy):
            raise TypeError(
                f'Strategy "{self.identifier}" produced {type(strategy).__name__}, '
                'expected an IterationStrategy'
            )
        return strategy


_NAMESPACES: dict[str, dict[str, StrategyEntry]] = {
    PRIMARY_NAMESPACE: {},
    FALLBACK_NAMESPACE: {},
}


def register_strategy(
    identifier: str,
    factory: type[IterationStrategy] | providers.Provider,
    *,
    namespace: str = PRIMARY_NAMESPACE,
    allow_override: bool = False,
) -> StrategyEntry:
    """Register an iteration strategy under ``identifier``.

    Parameters
    ----------
    identifier : str
        Name used to select the strategy on a container.
    factory : type[IterationStrategy] | providers.Provider
        A strategy class, or a ``dependency_injector`` provider that builds
        one when called with the container's storage. Classes are wrapped in
        ``providers.Factory``.
    namespace : str
        Target namespace, by default the primary one.
    allow_override : bool
        When false, raises when ``identifier`` is already registered in
        ``namespace``, by default False

    Raises
    ------
    StrategyRegistrationError
        When ``allow_override`` is false and ``identifier`` is taken.
    TypeError
        When ``factory`` is neither a strategy class nor a provider.
    """
    if namespace not in _NAMESPACES:
        raise UnknownStrategyError(f'Unknown strategy namespace "{namespace}"')

    if isinstance(factory, type) and issubclass(factory, IterationStrategy):
        provider: providers.Provider = providers.Factory(factory)
        strategy_class: type[IterationStrategy] | None = factory
    elif isinstance(factory, providers.Provider):
        provider = factory
        provides = getattr(factory, 'provides', None)
        strategy_class = provides if isinstance(provides, type) else None
    else:
        raise TypeError(f'Cannot register {factory!r} as an iteration strategy')

    entries = _NAMESPACES[namespace]
    if not allow_override and identifier in entries:
        raise StrategyRegistrationError(
            f'Iteration strategy "{identifier}" already registered in namespace "{namespace}".'
        )

    entry = StrategyEntry(identifier, namespace, provider, strategy_class)
    entries[identifier] = entry
    logger.debug('Registered iteration strategy %s.%s', namespace, identifier)
    return entry


def iteration_strategy(
    identifier: str, *, namespace: str = PRIMARY_NAMESPACE, allow_override: bool = False
) -> Callable[[type[IterationStrategy]], type[IterationStrategy]]:
    """Class decorator registering an ``IterationStrategy`` at definition time."""

    def decorator(cls: type[IterationStrategy]) -> type[IterationStrategy]:
        register_strategy(identifier, cls, namespace=namespace, allow_override=allow_override)
        return cls

    return decorator


def resolve_strategy(identifier: str | type[IterationStrategy]) -> StrategyEntry:
    """Resolve ``identifier`` to its registry entry.

    The primary namespace is consulted first, followed by exactly one
    fallback lookup in the builtin namespace. A strategy class resolves to
    the entry it was registered with.

    Raises
    ------
    UnknownStrategyError
        When neither namespace knows ``identifier``.
    """
    if isinstance(identifier, type):
        for namespace in (PRIMARY_NAMESPACE, FALLBACK_NAMESPACE):
            for entry in _NAMESPACES[namespace].values():
                if entry.strategy_class is identifier:
                    return entry
        raise UnknownStrategyError(f'The iteration strategy class {identifier.__name__} is not registered')

    if not isinstance(identifier, str):
        raise UnknownStrategyError(f'Invalid iteration strategy identifier: {identifier!r}')

    entry = _NAMESPACES[PRIMARY_NAMESPACE].get(identifier)
    if entry is None:
        entry = _NAMESPACES[FALLBACK_NAMESPACE].get(identifier)
    if entry is None:
        raise UnknownStrategyError(f'The iteration strategy "{identifier}" does not exist')
    return entry


def all_registered() -> List[StrategyEntry]:
    """Return a copy of all registered entries, primary namespace first."""
    return [entry for entries in _NAMESPACES.values() for entry in entries.values()]


def _register_builtins() -> None:
    register_strategy(DEFAULT_STRATEGY, DirectTraversal, namespace=FALLBACK_NAMESPACE, allow_override=True)
    register_strategy('snapshot', SnapshotTraversal, namespace=FALLBACK_NAMESPACE, allow_override=True)
    register_strategy('reverse', ReverseTraversal, namespace=FALLBACK_NAMESPACE, allow_override=True)
    register_strategy('sorted_keys', SortedKeyTraversal, namespace=FALLBACK_NAMESPACE, allow_override=True)


_register_builtins()
