"""
=============================================================================
TYPED FAILURES
=============================================================================

Every pipeline stage signals failure by raising one of these. Each one
knows the status code it maps to, so the top-level handler can translate
any of them into an error response without a lookup table:

    ┌──────────────────────────┬────────┬─────────────────────────────────┐
    │ Exception                │ Status │ Raised by                       │
    ├──────────────────────────┼────────┼─────────────────────────────────┤
    │ HTTPParseError           │  400   │ RequestParser                   │
    │ InvalidPath              │  400   │ RequestValidator                │
    │ MethodNotAllowed         │  405   │ RequestValidator (+ Allow)      │
    │ VersionUnsupported       │  505   │ RequestValidator                │
    │ NotFound                 │  404   │ ResourceResolver                │
    │ PermissionDenied         │  403   │ ResourceResolver                │
    │ RangeNotSatisfiable      │  416   │ RangeNegotiator                 │
    │ InternalError            │  500   │ anything else (I/O, bugs)       │
    └──────────────────────────┴────────┴─────────────────────────────────┘

=============================================================================
"""

from typing import Mapping, Optional

from .http.status_codes import HTTPStatus


class ServerError(Exception):
    """
    Base class for failures that become an HTTP error response.

    Attributes:
        status: HTTP status to send.
        message: Human-readable detail for the JSON body.
        headers: Extra response headers (e.g. ``Allow`` for 405).
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "", headers: Optional[Mapping[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = dict(headers or {})


class HTTPParseError(ServerError):
    """The request head could not be parsed at all."""
    status = HTTPStatus.BAD_REQUEST


class InvalidPath(ServerError):
    status = HTTPStatus.BAD_REQUEST


class MethodNotAllowed(ServerError):
    status = HTTPStatus.METHOD_NOT_ALLOWED

    def __init__(self, message: str = "", allowed: tuple[str, ...] = ("GET", "HEAD")):
        super().__init__(message, headers={"Allow": ", ".join(allowed)})
        self.allowed = allowed


class VersionUnsupported(ServerError):
    status = HTTPStatus.HTTP_VERSION_NOT_SUPPORTED


class NotFound(ServerError):
    status = HTTPStatus.NOT_FOUND


class PermissionDenied(ServerError):
    status = HTTPStatus.FORBIDDEN


class RangeNotSatisfiable(ServerError):
    status = HTTPStatus.RANGE_NOT_SATISFIABLE


class InternalError(ServerError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
