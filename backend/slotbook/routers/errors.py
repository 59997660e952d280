# backend/slotbook/routers/errors.py
"""Translate slot engine errors into HTTP errors."""

from fastapi import HTTPException, status

from ..services.slots.errors import (
    ConflictError,
    InvalidStatusTransition,
    NotFoundError,
    SlotEngineError,
    SlotInputError,
)


def to_http_exception(error: SlotEngineError) -> HTTPException:
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.to_dict())

    detail = {"code": error.code, "message": str(error)}
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    if isinstance(error, InvalidStatusTransition):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if isinstance(error, SlotInputError):
        return HTTPException(status_code=422, detail=detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
