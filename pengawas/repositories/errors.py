"""Errors raised by the record store."""


class StorageError(Exception):
    """Base class for record store failures."""


class RecordNotFoundError(StorageError):
    """Raised when an update targets an id that does not exist."""


class StorageUnavailableError(StorageError):
    """Raised when the backing file cannot be written."""


class ValidationPreconditionError(StorageError):
    """Raised when the caller breaks a documented precondition (missing field, duplicate username...)."""
