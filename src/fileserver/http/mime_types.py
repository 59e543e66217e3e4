"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Maps file extensions to media types for the Content-Type header.

    index.html   → text/html; charset=utf-8
    app.js       → text/javascript; charset=utf-8
    logo.png     → image/png
    archive.xyz  → application/octet-stream      (unknown → fallback)

Only ``text/*`` types get a charset parameter. JSON, SVG and friends are
sent without one; their own specs define the encoding.

The top-level type (``image`` in ``image/png``) also drives compression:
audio, image and video payloads are already compressed, so the content
encoder leaves them alone (see handlers/compression.py).

=============================================================================
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",     # Source maps
    ".webmanifest": "application/manifest+json",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",

    # Video
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Look up the media type for ``path`` by its (case-insensitive) extension.

    Examples:
        >>> get_mime_type("/srv/public/style.CSS")
        'text/css'
        >>> get_mime_type("data.bin")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Content-Type header value for ``path``.

    ``text/*`` types carry ``; charset=<charset>``, everything else is the
    bare media type.
    """
    mime_type = get_mime_type(path)
    if mime_type.startswith("text/"):
        return f"{mime_type}; charset={charset}"
    return mime_type


def top_level_type(content_type: str) -> str:
    """
    ``"image/png"`` → ``"image"``; parameters and case are ignored.
    """
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.split("/", 1)[0]
