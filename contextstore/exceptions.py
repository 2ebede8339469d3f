"""
Exception hierarchy for Contextstore.

All custom exceptions inherit from ContextStoreError base class. Each class
carries a ``kind`` tag so callers can render or branch on the failure without
parsing messages.
"""

from typing import Optional, Sequence


class ContextStoreError(Exception):
    """Base exception for all Contextstore errors."""

    kind = "ContextStoreError"
    transient = False

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


# Context name and lifecycle errors
class InvalidContextNameError(ContextStoreError):
    """Raised when a context name is empty, reserved or not filesystem-safe."""

    kind = "InvalidName"


class ContextAlreadyExistsError(ContextStoreError):
    """Raised when creating a context whose name is already taken."""

    kind = "AlreadyExists"


class ContextNotFoundError(ContextStoreError):
    """Raised when a context (or a ``from`` source context) does not exist."""

    kind = "NotFound"


class ContextInUseError(ContextStoreError):
    """Raised when removing the currently active context."""

    kind = "InUse"


# Endpoint option errors
class EndpointOptionError(ContextStoreError):
    """Base exception for endpoint option errors."""
    pass


class InvalidEndpointOptionError(EndpointOptionError):
    """Raised when an endpoint option key or value is not recognized."""

    kind = "InvalidOption"

    def __init__(
        self,
        message: str,
        endpoint_kind: Optional[str] = None,
        option: Optional[str] = None,
        name: Optional[str] = None,
    ):
        super().__init__(message, name=name)
        self.endpoint_kind = endpoint_kind
        self.option = option


class ConflictingOptionsError(EndpointOptionError):
    """Raised when mutually exclusive options are supplied together."""

    kind = "ConflictingOptions"

    def __init__(
        self,
        message: str,
        options: Sequence[str] = (),
        name: Optional[str] = None,
    ):
        super().__init__(message, name=name)
        self.options = tuple(options)


# Storage errors
class PersistenceError(ContextStoreError):
    """
    Raised when the underlying storage fails.

    The underlying OSError (or decode error) is chained as ``__cause__``. This is
    the only error kind that may succeed when retried by the caller.
    """

    kind = "PersistenceFailure"
    transient = True


# Configuration errors
class ConfigurationError(ContextStoreError):
    """Base exception for configuration-related errors."""

    kind = "Configuration"


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass
