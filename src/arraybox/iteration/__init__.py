# pyright: reportUnusedImport=false
from arraybox.iteration.registry import (
    DEFAULT_STRATEGY,
    FALLBACK_NAMESPACE,
    PRIMARY_NAMESPACE,
    StrategyEntry,
    all_registered,
    iteration_strategy,
    register_strategy,
    resolve_strategy,
)
from arraybox.iteration.strategies import (
    DirectTraversal,
    IterationStrategy,
    ReverseTraversal,
    SnapshotTraversal,
    SortedKeyTraversal,
)
