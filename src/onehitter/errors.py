"""OneHitter error taxonomy.

Validation outcomes (ok, not_found, expired, blocked) are never exceptions;
these classes cover operational failures only.
"""


class OneHitterError(Exception):
    """Base error with a stable machine-readable code."""

    code = "onehitter_error"

    def __init__(self, message: str, code: str | None = None, **extra):
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra
        super().__init__(message)


class ConfigurationError(OneHitterError):
    """Required configuration (the pepper, a storage handle) is missing at the point of use."""

    code = "configuration_error"


class StorageError(OneHitterError):
    """The storage backend failed. The driver exception is chained as ``__cause__``."""

    code = "storage_error"


class DeliveryError(OneHitterError):
    """A code could not be handed to the delivery transport."""

    code = "delivery_error"
