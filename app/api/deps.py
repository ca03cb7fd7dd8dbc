from fastapi import HTTPException, status

from app.core.errors import (
    InvariantViolation,
    NotFoundError,
    PermissionDeniedError,
    SettleError,
    SettlementStateError,
    StoreError,
)

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    SettlementStateError: status.HTTP_409_CONFLICT,
    InvariantViolation: status.HTTP_400_BAD_REQUEST,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: SettleError) -> HTTPException:
    """Translate a domain error into the HTTP error the client sees."""
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
