"""
Translation of tagged service results into HTTP responses.
This is the only place where the result taxonomy meets status codes.
"""

from typing import TypeVar

from fastapi import HTTPException, status

from passdesk.services.results import (
    Ok, Result, Invalid, NotFound, Forbidden, Conflict, UpstreamFailure, InternalError,
)

T = TypeVar("T")

STATUS_BY_FAILURE = {
    Invalid: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_403_FORBIDDEN,
    Conflict: status.HTTP_409_CONFLICT,
    UpstreamFailure: status.HTTP_502_BAD_GATEWAY,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def unwrap(result: Result[T]) -> T:
    """Return the Ok value or raise the HTTPException matching the failure."""
    if isinstance(result, Ok):
        return result.value
    raise HTTPException(
        status_code=STATUS_BY_FAILURE.get(type(result), status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=result.reason,
    )
