"""
=============================================================================
FILESYSTEM ACCESS
=============================================================================

The narrow filesystem surface the pipeline depends on:

    stat(path)                          → FileStat
    is_readable(path)                   → bool
    open_window(path, start, end)       → async iterator of byte chunks

=============================================================================
WHY THE CALLS GO THROUGH A THREAD
=============================================================================

The server runs every connection on one event loop. A plain ``f.read()``
on a slow disk would freeze *all* connections, not just the one reading.
Each blocking call is therefore handed to ``asyncio.to_thread`` and the
connection coroutine suspends until it returns:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  event loop                          worker thread                  │
    │  ──────────                          ─────────────                  │
    │  await reader.read_chunk() ───────►  f.read(65536)                  │
    │     (other connections run)                │                        │
    │  ◄─────────────────────────────────── chunk                         │
    │  await connection.write(chunk)   (pauses while the socket is full)  │
    └─────────────────────────────────────────────────────────────────────┘

Only one chunk is in flight per response: the next read is not issued
until the previous chunk was accepted by the socket, so a slow client
slows the reads down instead of filling memory.

=============================================================================
"""

import asyncio
import os
import stat as stat_module
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Optional


DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileStat:
    """The subset of ``os.stat_result`` the pipeline uses."""

    size: int
    mtime_ns: int
    is_dir: bool
    is_file: bool

    @classmethod
    def from_stat_result(cls, result: os.stat_result) -> "FileStat":
        return cls(
            size=result.st_size,
            mtime_ns=result.st_mtime_ns,
            is_dir=stat_module.S_ISDIR(result.st_mode),
            is_file=stat_module.S_ISREG(result.st_mode),
        )


class FileWindowReader:
    """
    Reads ``[start, end]`` of a file in chunks, off the event loop.

    Use as an async context manager so the handle is released even when
    the consumer stops early (client disconnect, write failure):

        async with fs.open_window(path, 100, 199) as reader:
            async for chunk in reader:
                await connection.write(chunk)
    """

    def __init__(self, path: Path, start: int = 0, end: Optional[int] = None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.path = path
        self.start = start
        self.end = end
        self.chunk_size = chunk_size
        self._file: Optional[BinaryIO] = None
        self._remaining: Optional[int] = None if end is None else end - start + 1

    async def open(self) -> "FileWindowReader":
        self._file = await asyncio.to_thread(self._open)
        return self

    def _open(self) -> BinaryIO:
        f = open(self.path, "rb")
        try:
            if self.start:
                f.seek(self.start)
        except OSError:
            f.close()
            raise
        return f

    async def read_chunk(self) -> bytes:
        """Next chunk, or ``b""`` once the window is exhausted."""
        if self._file is None:
            raise RuntimeError("reader is not open")
        if self._remaining is not None and self._remaining <= 0:
            return b""

        size = self.chunk_size
        if self._remaining is not None:
            size = min(size, self._remaining)

        chunk = await asyncio.to_thread(self._file.read, size)
        if self._remaining is not None:
            self._remaining -= len(chunk)
            if not chunk and self._remaining > 0:
                # File shrank underneath us; the promised length can't be met
                raise EOFError(
                    f"{self.path}: expected {self._remaining} more bytes"
                )
        return chunk

    async def close(self) -> None:
        if self._file is not None:
            f, self._file = self._file, None
            await asyncio.to_thread(f.close)

    async def __aenter__(self) -> "FileWindowReader":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                return
            yield chunk


class FileSystem:
    """Filesystem collaborator used by the resolver and the streamer."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    async def stat(self, path: Path) -> FileStat:
        """
        Stat ``path``.

        Raises:
            FileNotFoundError, PermissionError, OSError: as ``os.stat``.
        """
        result = await asyncio.to_thread(os.stat, path)
        return FileStat.from_stat_result(result)

    async def is_readable(self, path: Path) -> bool:
        return await asyncio.to_thread(os.access, path, os.R_OK)

    def open_window(self, path: Path, start: int = 0,
                    end: Optional[int] = None) -> FileWindowReader:
        """Reader for bytes ``start..end`` inclusive (to EOF if ``end`` is None)."""
        return FileWindowReader(path, start, end, self.chunk_size)
