"""
Request handlers: the response-decision pipeline and its stages.
"""

from .cache import CacheNegotiator, make_etag
from .compression import ContentEncoder
from .errors import ErrorReporter
from .ranges import RangeNegotiator
from .resolver import Resource, ResourceResolver
from .static import StaticFileHandler
from .validation import RequestValidator

__all__ = [
    "CacheNegotiator",
    "ContentEncoder",
    "ErrorReporter",
    "RangeNegotiator",
    "RequestValidator",
    "Resource",
    "ResourceResolver",
    "StaticFileHandler",
    "make_etag",
]
