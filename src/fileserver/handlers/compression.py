"""
=============================================================================
CONTENT ENCODING
=============================================================================

Decides whether a full (200) response is gzip-compressed on the fly.

    ┌────────────────────────────────────────────────────────────────────┐
    │   Content Type        │ Original │ Compressed │ Savings            │
    │   ────────────────────┼──────────┼────────────┼─────────           │
    │   HTML page           │   50 KB  │   10 KB    │  80%               │
    │   JavaScript bundle   │  500 KB  │   80 KB    │  84%               │
    │   PNG / MP4 / MP3     │   any    │  ~same     │  ~0%               │
    └────────────────────────────────────────────────────────────────────┘

Rules:

    1. Accept-Encoding lists ``gzip``
    2. Content-Type's top-level type is not audio, image or video

Both hold → ``Content-Encoding: gzip``. The compressed size is unknown
until the last byte is compressed, so Content-Length goes away and the
body is sent with chunked transfer coding.

=============================================================================
GZIP VS ZLIB
=============================================================================

``zlib.compressobj(level, DEFLATED, 31)``: a window-bits value of 16 + 15
makes zlib write the gzip header and trailer, so the stream is a valid
``.gz`` file and can be produced incrementally, chunk by chunk, without
holding the whole file in memory like ``gzip.compress`` would.

=============================================================================
"""

import logging
import zlib
from typing import Callable, Dict

from ..http.mime_types import top_level_type
from ..http.request import HTTPRequest
from ..http.response import BodyStrategy, Headers, ResponseIntent
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

INCOMPRESSIBLE_TYPES = frozenset({"audio", "image", "video"})

GZIP_WBITS = 16 + zlib.MAX_WBITS


def accepted_encodings(header: str) -> set[str]:
    """
    Content-coding tokens from an Accept-Encoding value, parameters dropped.

        >>> sorted(accepted_encodings("gzip;q=1.0, br, deflate"))
        ['br', 'deflate', 'gzip']
    """
    tokens = set()
    for item in header.split(","):
        token = item.split(";", 1)[0].strip().lower()
        if token:
            tokens.add(token)
    return tokens


class ContentEncoder:
    """
    Builds the 200 intent for a full body, compressed or not.

    Args:
        level: zlib compression level (1-9).
    """

    def __init__(self, level: int = 6):
        self.level = level

    def should_compress(self, request: HTTPRequest, content_type: str) -> bool:
        if "gzip" not in accepted_encodings(request.get_header("Accept-Encoding")):
            return False
        return top_level_type(content_type) not in INCOMPRESSIBLE_TYPES

    def negotiate(self, request: HTTPRequest, content_type: str, size: int,
                  headers: Headers) -> ResponseIntent:
        headers = headers.with_header("Content-Type", content_type)

        if not self.should_compress(request, content_type):
            return ResponseIntent(
                status=HTTPStatus.OK,
                headers=headers.with_header("Content-Length", size),
                strategy=BodyStrategy.FULL,
                size=size,
            )

        logger.debug(f"Compressing {request.path} ({content_type})")
        return ResponseIntent(
            status=HTTPStatus.OK,
            headers=headers.without("Content-Length").with_headers({
                "Content-Encoding": "gzip",
                "Transfer-Encoding": "chunked",
            }),
            strategy=BodyStrategy.FULL,
            encoding="gzip",
            size=size,
        )

    def compressors(self) -> Dict[str, Callable[[], "zlib._Compress"]]:
        """Compressor factories keyed by content-coding, for the streamer."""
        return {"gzip": lambda: zlib.compressobj(self.level, zlib.DEFLATED, GZIP_WBITS)}
