"""Storage service exceptions."""


class StorageError(Exception):
    """Base storage exception."""
    pass


class ConfigurationError(StorageError):
    """Credentials missing or malformed; no request can be built."""
    pass
