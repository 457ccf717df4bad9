"""Translate service exceptions into HTTP errors."""

from fastapi import HTTPException, status

from ..services.common import (
    CadenceError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..services.oauth import IntegrationNotConfiguredError

STATUS_BY_ERROR: dict[type[CadenceError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidTransitionError: status.HTTP_400_BAD_REQUEST,
    IntegrationNotConfiguredError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(error: CadenceError) -> HTTPException:
    """HTTPException carrying the service's message; `raise http_error(e) from e`."""
    code = STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(error))
