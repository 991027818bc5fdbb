from fastapi import HTTPException, status

from kardex.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    TransactionConflictError,
)


def to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, InsufficientStockError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_detail())
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.to_detail())
    if isinstance(exc, TransactionConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "TRANSACTION_CONFLICT", "message": str(exc)},
        )
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
