"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Parses a raw request head (request line + headers) into an HTTPRequest.

=============================================================================
WHAT THE PARSER DOES AND DOES NOT DECIDE
=============================================================================

The parser only answers "is this an HTTP message at all?". Whether the
server is willing to serve it is the RequestValidator's job:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  "GET /a.txt HTTP/1.1"     parser: ok     validator: ok             │
    │  "POST /a.txt HTTP/1.1"    parser: ok     validator: 405            │
    │  "GET /a.txt HTTP/2.0"     parser: ok     validator: 505            │
    │  "GET /../x HTTP/1.1"      parser: ok     validator: 400            │
    │  "garbage"                 parser: 400                              │
    └─────────────────────────────────────────────────────────────────────┘

The request target is kept exactly as sent. It is NOT percent-decoded:
the path grammar has no ``%`` in it, so encoded traversal attempts such
as ``/%2e%2e/etc/passwd`` simply fail validation.

=============================================================================
REQUEST HEAD FORMAT (RFC 7230)
=============================================================================

    GET /docs/guide.html?v=2 HTTP/1.1\r\n      ← request line
    Host: localhost:8000\r\n                   ← headers
    Range: bytes=0-99\r\n
    \r\n                                       ← end of head

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict

from ..errors import HTTPParseError


@dataclass
class HTTPRequest:
    """
    A parsed request head.

    Attributes:
        method:         Request method as sent (``GET``, ``HEAD``, ...).
        target:         Raw request target, query string included.
        version:        Protocol version token, e.g. ``HTTP/1.1``.
        headers:        Header map with LOWERCASE names.
        client_address: (ip, port) of the peer.
    """

    method: str
    target: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def path(self) -> str:
        """Request target with the query string stripped."""
        return self.target.split("?", 1)[0]

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def content_length(self) -> int:
        """Declared body length; 0 when absent or invalid."""
        try:
            return max(int(self.headers.get("content-length", "0")), 0)
        except ValueError:
            return 0

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 connections are persistent unless the client opts out
        with ``Connection: close``.
        """
        connection = self.headers.get("connection", "").lower()
        tokens = {token.strip() for token in connection.split(",")}
        if self.version == "HTTP/1.1":
            return "close" not in tokens
        return "keep-alive" in tokens

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parser for request heads.

    Usage:
        parser = RequestParser()
        request = parser.parse(head_bytes, ("127.0.0.1", 52100))
    """

    # method SP request-target SP HTTP-version
    REQUEST_LINE_PATTERN = re.compile(
        r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) (\S+) (HTTP/\d\.\d)$"
    )
    HEADER_PATTERN = re.compile(r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+):[ \t]*(.*?)[ \t]*$")

    def __init__(self, max_head_size: int = 16 * 1024):
        self.max_head_size = max_head_size

    def parse(self, data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse a complete request head.

        Args:
            data: Head bytes, with or without the trailing ``\\r\\n\\r\\n``.
            client_address: Peer address for diagnostics.

        Raises:
            HTTPParseError: Oversized, undecodable or malformed head.
        """
        if len(data) > self.max_head_size:
            raise HTTPParseError(f"Request head too large: {len(data)} bytes")

        # Header bytes are ISO-8859-1 per RFC 7230; this never fails to decode
        text = data.decode("latin-1")
        head, _, _ = text.partition("\r\n\r\n")
        lines = head.split("\r\n")
        if not lines or not lines[0]:
            raise HTTPParseError("Empty request")

        match = self.REQUEST_LINE_PATTERN.match(lines[0])
        if not match:
            raise HTTPParseError(f"Invalid request line: {lines[0]!r}")
        method, target, version = match.groups()

        return HTTPRequest(
            method=method,
            target=target,
            version=version,
            headers=self._parse_headers(lines[1:]),
            client_address=client_address,
        )

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a lowercase-keyed dict.

        Repeated headers are joined with ``", "`` (RFC 7230 section 3.2.2).
        Obsolete line folding is rejected rather than guessed at.
        """
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            if line[0] in (" ", "\t"):
                raise HTTPParseError("Obsolete header line folding is not supported")

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line!r}")

            name, value = match.groups()
            name = name.lower()
            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value
        return headers


def parse_request(data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
    """Parse ``data`` with a default RequestParser."""
    return RequestParser().parse(data, client_address)
