"""
=============================================================================
REQUEST VALIDATION
=============================================================================

First pipeline stage. Rejects requests the server will not serve, before
anything touches the filesystem.

    1. Protocol version must be exactly HTTP/1.1        else 505
    2. Method must be GET or HEAD                       else 405 + Allow
    3. Path (query stripped) must match the grammar     else 400

=============================================================================
SECURITY: THE PATH GRAMMAR
=============================================================================

A path is ``/`` followed by zero or more segments separated by single
slashes, optionally ending with a slash. A segment is a name made of
``A-Z a-z 0-9 _ - ~``, optionally followed by ``.``-prefixed extension
tokens of the same characters:

    /                           ok
    /index.html                 ok
    /docs/guide.v2.html         ok
    /assets/                    ok
    /../etc/passwd              rejected   (".." is not a segment)
    /a/./b                      rejected   ("." is not a segment)
    //etc/passwd                rejected   (empty segment)
    /%2e%2e/secret              rejected   ("%" is not allowed)
    /a b                        rejected

Nothing that could climb out of the root can get through, and nothing
needs decoding first.

=============================================================================
"""

import re

from ..errors import InvalidPath, MethodNotAllowed, VersionUnsupported
from ..http.request import HTTPRequest


ALLOWED_METHODS = ("GET", "HEAD")
SUPPORTED_VERSION = "HTTP/1.1"

_NAME = r"[A-Za-z0-9_~-]"
_SEGMENT = rf"(?:{_NAME}+(?:\.{_NAME}+)*|(?:\.{_NAME}+)+)"
PATH_PATTERN = re.compile(rf"^/(?:{_SEGMENT}(?:/{_SEGMENT})*/?)?$")


class RequestValidator:
    """Stateless validator for version, method and path."""

    def __init__(self, allowed_methods: tuple[str, ...] = ALLOWED_METHODS):
        self.allowed_methods = allowed_methods

    def validate(self, request: HTTPRequest) -> None:
        """
        Raise the first failure that applies, or return None.

        Raises:
            VersionUnsupported, MethodNotAllowed, InvalidPath
        """
        if request.version != SUPPORTED_VERSION:
            raise VersionUnsupported("Only HTTP/1.1 is supported")

        if request.method not in self.allowed_methods:
            raise MethodNotAllowed(
                f"Only {' and '.join(self.allowed_methods)} methods are allowed",
                allowed=self.allowed_methods,
            )

        path = request.path
        if not is_valid_path(path):
            raise InvalidPath(f"Invalid pathname: {path}")


def is_valid_path(path: str) -> bool:
    return PATH_PATTERN.match(path) is not None
