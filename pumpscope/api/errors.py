from fastapi import HTTPException

from ..errors import (
    AuthExpired,
    IncompleteAggregate,
    MalformedArguments,
    PumpscopeError,
    TransportError,
    UnknownFunction,
)

STATUS_BY_ERROR = (
    (MalformedArguments, 400),
    (AuthExpired, 401),
    (UnknownFunction, 404),
    (IncompleteAggregate, 404),
    (TransportError, 502),
)


def http_error(error: PumpscopeError) -> HTTPException:
    """Translate a pumpscope error into an HTTP error response."""
    status_code = next(
        (status for error_type, status in STATUS_BY_ERROR if isinstance(error, error_type)),
        500,
    )
    return HTTPException(status_code=status_code, detail={"error": error.message, **error.details})
