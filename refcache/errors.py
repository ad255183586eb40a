"""
Exceptions raised by the cache layer and the record stores behind it.

Not-found is never an exception here: id and slug reads return None.
"""


class RefCacheError(Exception):
    """Base class for all refcache errors."""


class StoreFailureError(RefCacheError):
    """The record store call itself failed (connection, SQL, I/O)."""

    def __init__(self, collection: str, operation: str, message: str = ""):
        self.collection = collection
        self.operation = operation
        detail = f": {message}" if message else ""
        super().__init__(f"Store failure in {collection}.{operation}{detail}")


class ConfigurationMissingError(RefCacheError):
    """A service or registry was used before its wiring was completed."""
