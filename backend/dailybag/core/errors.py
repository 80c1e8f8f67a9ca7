import logging

from fastapi import HTTPException, status


class NotFoundError(ValueError):
    pass


class AccessError(ValueError):
    pass


class ConflictError(ValueError):
    pass


def RaiseHttpError(exc: Exception) -> None:
    detail = str(exc)
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail) from exc
    if isinstance(exc, AccessError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc


def RaiseStorageError(logger: logging.Logger, exc: Exception) -> None:
    logger.exception("%s database error", logger.name)
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Storage not initialized. Run alembic upgrade head.",
    ) from exc
