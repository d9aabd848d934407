from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def reset_settings_and_registry() -> Iterator[None]:
    """Reset module-level state in the settings and strategy registry before each test."""
    import arraybox.iteration.registry as registry
    import arraybox.settings as settings

    # Caller registrations live in the primary namespace; builtins stay.
    registry._NAMESPACES[registry.PRIMARY_NAMESPACE].clear()  # pyright: ignore[reportPrivateUsage]
    registry._register_builtins()  # pyright: ignore[reportPrivateUsage]

    settings.clear_settings()

    yield
