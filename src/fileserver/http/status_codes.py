"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a static file server actually emits, with the reason
phrases used on the status line and in the JSON error body.

=============================================================================
WHICH CODES, AND WHEN
=============================================================================

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ Full representation (identity or gzip)                    │
    │  206   │ Byte-range response (single part or multipart)            │
    │  304   │ Client cache is still valid (If-None-Match / IMS)         │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Path does not match the accepted grammar                  │
    │  403   │ File exists but cannot be read, or escapes the root       │
    │  404   │ No such file (or directory without an index file)         │
    │  405   │ Anything other than GET / HEAD                            │
    │  416   │ Range header malformed or outside the file                │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ Unexpected I/O failure before headers were sent           │
    │  505   │ Anything other than HTTP/1.1                              │
    └────────┴───────────────────────────────────────────────────────────┘

Q: "Why is 304 not an error?"
A: "It is a normal terminal outcome of revalidation. The client already
   holds the bytes; the server only confirms they are still current."

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the file server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.PARTIAL_CONTENT == 206
        True
        >>> HTTPStatus.PARTIAL_CONTENT.phrase
        'Partial Content'
    """

    # 2xx SUCCESS
    OK = 200                            # Full body
    PARTIAL_CONTENT = 206               # Range request fulfilled

    # 3xx REDIRECTION
    NOT_MODIFIED = 304                  # Cached version is still valid

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400                   # Malformed request line or path
    FORBIDDEN = 403                     # Not readable / outside root
    NOT_FOUND = 404                     # Resource doesn't exist
    METHOD_NOT_ALLOWED = 405            # Only GET and HEAD are served
    RANGE_NOT_SATISFIABLE = 416         # Range header invalid

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500         # Unexpected server error
    HTTP_VERSION_NOT_SUPPORTED = 505    # Only HTTP/1.1 is spoken

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. ``Not Found``."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        304 never does (RFC 7232 section 4.1).
        """
        return self != HTTPStatus.NOT_MODIFIED

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
