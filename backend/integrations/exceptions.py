"""Typed exception hierarchy for external collaborator errors.

Provides structured exceptions for differentiated error handling
(missing files vs transient storage failures vs price feed issues).
"""


class ExternalServiceError(Exception):
    """Base exception for all external collaborator errors.

    Carries the service name so callers can identify which collaborator failed.
    """

    def __init__(self, message: str, service_name: str = ""):
        self.service_name = service_name
        super().__init__(message)


class StorageError(ExternalServiceError):
    """Raw statement file could not be stored, read or removed."""

    def __init__(self, message: str, service_name: str = "storage", path: str | None = None):
        self.path = path
        super().__init__(message, service_name)


class StorageNotFoundError(StorageError):
    """The requested file path does not exist in storage."""

    pass


class MarketDataError(ExternalServiceError):
    """Price lookup failed. Callers fall back to the trade price."""

    pass
