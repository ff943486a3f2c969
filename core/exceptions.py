"""Exception hierarchy for the matching service.

Each exception carries the HTTP status and a details dict so the handlers in
`core.error_handlers` can render it without knowing where it was raised.
"""

from typing import Any, Dict, List, Optional


class AppException(Exception):
    """Base class for all matching service errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Structured context for the error body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """A referenced dish image or catalog entry does not exist."""

    def __init__(self, resource: str, identifier: Any):
        message = f"{resource} '{identifier}' not found"
        super().__init__(message, status_code=404, details={"resource": resource, "id": identifier})


class ValidationError(AppException):
    """Client input that passed the request schema but is still unusable (bad base64, path escape)."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, status_code=400, details=details)


class SchemaError(AppException):
    """Catalog data failed validation at load time.

    Raised for missing fields, wrong embedding length or duplicate ids.
    Startup aborts on it; a catalog is never silently emptied.

    Args:
        message: Error message.
        catalog: Catalog name ('dishes', 'stock').
        record: Position of the offending record in the file.
        errors: Field-level errors as `{"field", "message"}` dicts.
    """

    def __init__(self, message: str, catalog: Optional[str] = None, record: Optional[int] = None,
                 errors: Optional[List[Dict[str, Any]]] = None):
        details: Dict[str, Any] = {}
        if catalog:
            details["catalog"] = catalog
        if record is not None:
            details["record"] = record
        if errors:
            details["errors"] = errors
        super().__init__(message, status_code=500, details=details)


class ProviderError(AppException):
    """The embedding or analysis collaborator failed.

    Quota, network, timeout and malformed responses all end up here. Callers
    must let it propagate: an outage is never reported as "no match".
    """

    def __init__(self, message: str, provider: Optional[str] = None, reason: Optional[str] = None):
        details: Dict[str, Any] = {"retryable": True}
        if provider:
            details["provider"] = provider
        if reason:
            details["reason"] = reason
        super().__init__(message, status_code=503, details=details)


class ConfigurationError(AppException):
    """Missing API key or an environment value that does not parse."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else {}
        super().__init__(message, status_code=500, details=details)
