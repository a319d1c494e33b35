class SelfIsolationError(Exception):
    pass


class IsolationStorageError(SelfIsolationError):
    """
    Raised when the isolation state could not be read from or written to
    its storage. The previously persisted value is left untouched.
    """


class StoredStateVersionError(IsolationStorageError):
    pass


class ConfigurationFetchError(SelfIsolationError):
    pass


class InvalidAcknowledgementToken(SelfIsolationError):
    pass
