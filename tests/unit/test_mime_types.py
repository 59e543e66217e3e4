"""
Unit tests for MIME type detection and status codes.
"""

import pytest

from fileserver.http.mime_types import get_content_type, get_mime_type, top_level_type
from fileserver.http.status_codes import HTTPStatus


class TestMimeTypes:

    @pytest.mark.parametrize("path, expected", [
        ("index.html", "text/html; charset=utf-8"),
        ("notes.txt", "text/plain; charset=utf-8"),
        ("app.js", "text/javascript; charset=utf-8"),
        ("data.json", "application/json"),
        ("image.png", "image/png"),
        ("clip.mp4", "video/mp4"),
        ("blob.bin", "application/octet-stream"),
        ("no_extension", "application/octet-stream"),
    ])
    def test_content_type(self, path: str, expected: str):
        assert get_content_type(path) == expected

    def test_extension_case_is_ignored(self):
        assert get_mime_type("/srv/public/PHOTO.JPG") == "image/jpeg"

    def test_only_last_extension_counts(self):
        assert get_mime_type("guide.v2.html") == "text/html"

    def test_custom_default(self):
        assert get_mime_type("file.unknown", default="text/plain") == "text/plain"

    @pytest.mark.parametrize("content_type, expected", [
        ("image/png", "image"),
        ("text/html; charset=utf-8", "text"),
        ("Audio/MPEG", "audio"),
    ])
    def test_top_level_type(self, content_type: str, expected: str):
        assert top_level_type(content_type) == expected


class TestHTTPStatus:

    def test_phrases(self):
        assert HTTPStatus.RANGE_NOT_SATISFIABLE.phrase == "Range Not Satisfiable"
        assert HTTPStatus.HTTP_VERSION_NOT_SUPPORTED.phrase == "HTTP Version Not Supported"

    def test_compares_to_int(self):
        assert HTTPStatus.NOT_MODIFIED == 304

    def test_not_modified_has_no_body(self):
        assert HTTPStatus.NOT_MODIFIED.allows_body is False
        assert HTTPStatus.OK.allows_body is True

    def test_is_error(self):
        assert HTTPStatus.NOT_FOUND.is_error is True
        assert HTTPStatus.PARTIAL_CONTENT.is_error is False
