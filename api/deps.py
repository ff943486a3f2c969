"""Dependency helpers exposing the matching service to FastAPI endpoints.

The service is built once in the application lifespan and stored on
`app.state`; endpoints receive it through `Depends(get_matching_service)`.
"""

from fastapi import Request

from core.exceptions import ConfigurationError
from services.matching_service import MatchingService


def get_matching_service(request: Request) -> MatchingService:
    """Return the process-wide `MatchingService` for the current request."""
    service = getattr(request.app.state, "matching", None)
    if service is None:
        raise ConfigurationError("Matching service is not initialized")
    return service
