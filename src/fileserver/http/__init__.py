"""
=============================================================================
HTTP MODULE
=============================================================================

Protocol-level building blocks, free of any filesystem or socket code:

    request.py       request-head parsing → HTTPRequest
    response.py      Headers, ResponseIntent, HTTP dates, head serialization
    range_parser.py  Range header → list of ByteRange (or a sentinel)
    mime_types.py    extension → Content-Type
    status_codes.py  the status codes this server emits

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import HTTPRequest, RequestParser, parse_request
from .response import (
    BodyStrategy,
    Headers,
    ResponseIntent,
    format_http_date,
    parse_http_date,
    serialize_head,
)
from .range_parser import ByteRange, RangeError, parse_range
from .mime_types import get_content_type, get_mime_type

__all__ = [
    "HTTPStatus",
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "BodyStrategy",
    "Headers",
    "ResponseIntent",
    "format_http_date",
    "parse_http_date",
    "serialize_head",
    "ByteRange",
    "RangeError",
    "parse_range",
    "get_content_type",
    "get_mime_type",
]
