"""Error taxonomy for the CMS.

The GitHub client raises ``RemoteError`` carrying the raw HTTP status. The
repo and service layers translate those into one of four kinds the routers
know how to render: ``NotFound``, ``Conflict``, ``RemoteUnavailable`` and
``ValidationError``.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Non-success response from the hosting API."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"GitHub API error: {status} {message}")
        self.status = status
        self.message = message


class CMSError(Exception):
    """Base class for errors that reach the HTTP boundary."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.path = path
        self.branch = branch

    def context(self) -> dict:
        return {
            key: value
            for key, value in (
                ("operation", self.operation),
                ("path", self.path),
                ("branch", self.branch),
            )
            if value
        }


class NotFound(CMSError):
    pass


class Conflict(CMSError):
    pass


class RemoteUnavailable(CMSError):
    pass


class ValidationError(CMSError):
    pass


def classify_remote_error(
    error: RemoteError,
    operation: str,
    path: Optional[str] = None,
    branch: Optional[str] = None,
    *,
    write: bool = False,
) -> CMSError:
    """Map a raw status onto the taxonomy.

    GitHub answers 409 when the supplied sha is stale and 422 when a write
    omits the sha of a file that already exists.
    """
    if error.status == 404:
        kind = NotFound
    elif error.status == 409:
        kind = Conflict
    elif error.status == 422 and write:
        kind = Conflict
    else:
        kind = RemoteUnavailable
    return kind(error.message, operation=operation, path=path, branch=branch)


@contextmanager
def remote_errors(
    operation: str,
    path: Optional[str] = None,
    branch: Optional[str] = None,
    *,
    write: bool = False,
) -> Iterator[None]:
    try:
        yield
    except RemoteError as e:
        raise classify_remote_error(
            e, operation, path, branch, write=write
        ) from e
    except httpx.HTTPError as e:
        logger.error(f"Transport error during {operation}: {e}")
        raise RemoteUnavailable(
            str(e) or e.__class__.__name__,
            operation=operation,
            path=path,
            branch=branch,
        ) from e
