from fastapi import HTTPException

from app.exceptions import CMSError, Conflict, NotFound, RemoteUnavailable, ValidationError

STATUS_BY_ERROR = {
    ValidationError: 400,
    NotFound: 404,
    Conflict: 409,
    RemoteUnavailable: 502,
}


def to_http_exception(error: CMSError) -> HTTPException:
    status_code = next(
        (code for kind, code in STATUS_BY_ERROR.items() if isinstance(error, kind)),
        502,
    )
    detail = error.message
    if isinstance(error, Conflict):
        detail = f"{detail}. Reload the post and try again."
    return HTTPException(status_code=status_code, detail=detail)
