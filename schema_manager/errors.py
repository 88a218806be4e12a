"""Error types raised by schema operations.

Every error carries the HTTP status it is reported with. The message is
returned verbatim to the caller as ``{"error": message}``.
"""

from fastapi import status


class SchemaManagerError(Exception):
    """Base class for errors reported to the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthenticationError(SchemaManagerError):
    """Missing or invalid caller credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class SchemaValidationError(SchemaManagerError):
    """Malformed identifier, disallowed type, or protected target."""


class ColumnHasDataError(SchemaManagerError):
    """Column still holds non-null values and cannot be dropped."""


class CatalogError(SchemaManagerError):
    """A DDL statement or catalog query failed."""


class PartialCreateError(CatalogError):
    """A table was created but its row level security setup failed."""


class ServiceConfigurationError(SchemaManagerError):
    """The catalog connection settings are missing."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
