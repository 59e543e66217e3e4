"""
=============================================================================
RESOURCE RESOLUTION
=============================================================================

Maps a validated URL path to a file under the configured root.

=============================================================================
FLOW
=============================================================================

    GET /docs/
        │
        ▼
    root / "docs"                        join under the canonical root
        │
        ▼
    resolve() + relative_to(root)        symlink escaping the root → 403
        │
        ▼
    stat()                               missing → 404
        │
        ├── directory? → root/docs/index.html, stat again (missing → 404)
        │
        ▼
    regular file? readable?              not a file → 404, unreadable → 403
        │
        ▼
    Resource(path, size, mtime_ns, content_type)

=============================================================================
SECURITY: TWO LAYERS
=============================================================================

The path grammar (validation.py) already makes ``..`` impossible. The
containment check here is the second layer: it catches symlinks inside
the root that point somewhere else.

    full_path = (root / user_path).resolve()
    full_path.relative_to(root)      # ValueError if outside

The root itself is canonicalized once, at startup (config.resolved_root).

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..core.filesystem import FileStat, FileSystem
from ..errors import InternalError, NotFound, PermissionDenied
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resource:
    """
    A file resolved for one request.

    Attributes:
        path: Absolute, canonical filesystem path.
        size: Length in bytes.
        mtime_ns: Modification time in nanoseconds since the epoch.
        content_type: Content-Type header value (charset included for text).
    """

    path: Path
    size: int
    mtime_ns: int
    content_type: str

    @property
    def mtime_seconds(self) -> int:
        """Whole seconds: the precision of an HTTP date."""
        return self.mtime_ns // 1_000_000_000


class ResourceResolver:
    """
    Resolves URL paths against ``root_dir``.

    Args:
        root_dir: Canonical (already resolved) root directory.
        filesystem: Filesystem collaborator.
        index_file: File served for directory requests.
    """

    def __init__(self, root_dir: Path, filesystem: FileSystem, index_file: str = "index.html"):
        self.root_dir = root_dir
        self.filesystem = filesystem
        self.index_file = index_file

    async def resolve(self, url_path: str) -> Resource:
        """
        Resolve a validated URL path.

        Raises:
            NotFound: Nothing there, or a directory without an index file.
            PermissionDenied: Not readable, or resolves outside the root.
            InternalError: Any other OS error.
        """
        relative = url_path.lstrip("/")
        path = self._contain(self.root_dir / relative, url_path)
        stat = await self._stat(path, url_path)

        if stat.is_dir:
            path = self._contain(path / self.index_file, url_path)
            stat = await self._stat(path, url_path)

        if not stat.is_file:
            raise NotFound(f"Not found: {url_path}")

        if not await self.filesystem.is_readable(path):
            raise PermissionDenied(f"Permission denied: {url_path}")

        logger.debug(f"Resolved {url_path} -> {path} ({stat.size} bytes)")
        return Resource(
            path=path,
            size=stat.size,
            mtime_ns=stat.mtime_ns,
            content_type=get_content_type(path),
        )

    def _contain(self, candidate: Path, url_path: str) -> Path:
        """Canonicalize ``candidate`` and require it to stay under the root."""
        resolved = candidate.resolve()
        try:
            resolved.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path escapes root: {url_path} -> {resolved}")
            raise PermissionDenied(f"Access denied: {url_path}") from None
        return resolved

    async def _stat(self, path: Path, url_path: str) -> FileStat:
        try:
            return await self.filesystem.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            raise NotFound(f"Not found: {url_path}") from None
        except PermissionError:
            raise PermissionDenied(f"Permission denied: {url_path}") from None
        except OSError as e:
            logger.error(f"Cannot stat {path}: {e!r}")
            raise InternalError(f"Cannot read {url_path}") from e
