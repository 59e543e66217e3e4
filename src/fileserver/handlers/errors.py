"""
=============================================================================
ERROR RESPONSES
=============================================================================

Every failure, whatever stage raised it, leaves the server in one shape:

    HTTP/1.1 404 Not Found
    Content-Type: application/json
    Content-Length: 70
    Cache-Control: no-cache
    ...

    {"status": 404, "statusMessage": "Not Found", "message": "Not found: /x"}

Before the error head is built, every header a half-negotiated success
response may have picked up (validators, encoding, framing) is removed,
so an error can never claim to be a cacheable or compressed file.

If the response head already went out, there is nothing left to report
on this connection and ``report()`` does nothing.

=============================================================================
"""

import json
import logging

from ..core.connection import Connection
from ..core.streamer import ResponseStreamer, StreamOutcome
from ..errors import ServerError
from ..http.response import BodyStrategy, Headers, ResponseIntent
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# Success-only headers that must not survive into an error response
STRIPPED_HEADERS = (
    "ETag",
    "Last-Modified",
    "Vary",
    "Cache-Control",
    "Content-Encoding",
    "Content-Type",
    "Content-Length",
    "Content-Range",
    "Transfer-Encoding",
)


def error_body(status: HTTPStatus, message: str) -> bytes:
    payload = {
        "status": int(status),
        "statusMessage": status.phrase,
        "message": message,
    }
    return json.dumps(payload).encode("utf-8")


class ErrorReporter:
    """
    Sends ``{status, statusMessage, message}`` JSON error responses.

    Args:
        streamer: Used to write the head and body.
    """

    def __init__(self, streamer: ResponseStreamer):
        self.streamer = streamer

    def build(self, error: ServerError, headers: Headers) -> ResponseIntent:
        """The ERROR_JSON intent for ``error``, starting from ``headers``."""
        message = error.message or error.status.phrase
        body = error_body(error.status, message)

        headers = headers.without(*STRIPPED_HEADERS).with_headers({
            "Content-Type": "application/json",
            "Content-Length": len(body),
            "Cache-Control": "no-cache",
        })
        if error.headers:
            headers = headers.with_headers(error.headers)

        return ResponseIntent(
            status=error.status,
            headers=headers,
            strategy=BodyStrategy.ERROR_JSON,
            body=body,
        )

    async def report(self, connection: Connection, error: ServerError,
                     headers: Headers, send_body: bool = True) -> StreamOutcome:
        """
        Send the error response, unless a head was already sent.

        Args:
            send_body: False for HEAD requests: same head, no body.
        """
        if connection.headers_sent:
            logger.debug(
                f"[{connection.id}] Headers already sent, dropping {int(error.status)} error"
            )
            return StreamOutcome.done()

        intent = self.build(error, headers)
        return await self.streamer.stream(connection, intent, send_body=send_body)
