class ArrayBoxError(Exception):
    """Base class for all errors raised by ``arraybox``."""


class ProtectedNameError(ArrayBoxError, AttributeError):
    """Raised when dynamic attribute access targets a protected name.

    Only raised in ``Mode.STANDARD_PROPERTIES``; the name belongs to the
    container's own internal fields and must not be shadowed by caller data.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f'"{name}" is a protected property, use a different key')
        self.name = name


class InvalidInputError(ArrayBoxError, TypeError):
    """Raised when a value is neither array-like nor object-like."""


class UnknownStrategyError(ArrayBoxError, LookupError):
    """Raised when an iteration strategy identifier does not resolve."""


class StrategyRegistrationError(ArrayBoxError, RuntimeError):
    """Raised when registering an iteration strategy twice without override."""


class MalformedSerializedStateError(ArrayBoxError, ValueError):
    """Raised when serialized state does not decode to the expected record."""


class StaleHandleError(ArrayBoxError, RuntimeError):
    """Raised when a slot handle is used after a structural mutation."""
