from __future__ import annotations


class BusinessValidationError(Exception):
    """Raised when a domain/business rule is violated."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreInitializationError(Exception):
    """Raised when the clinical store cannot load or create its database image."""


class StoreUnavailableError(Exception):
    """Raised when an operation runs against a store that is not open."""


class StorageIOError(Exception):
    """Raised for unexpected failures reading or writing the durable blob."""
