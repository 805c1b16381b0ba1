class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ConfigurationError(DomainError):
    """Raised when a backing store is selected but its settings are incomplete."""


class NetworkFailure(DomainError):
    """Raised by client transports when the gateway cannot be reached."""


class RowOwnershipError(DomainError):
    """Raised when an upsert id belongs to another meeting's or another subject's row."""
