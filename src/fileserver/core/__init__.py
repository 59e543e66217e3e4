"""
=============================================================================
CORE I/O COMPONENTS
=============================================================================

    connection.py   one client: read heads, write heads and bodies, abort
    filesystem.py   stat, and windowed reads off the event loop
    streamer.py     turns a ResponseIntent into bytes on a Connection

Nothing here decides WHAT to send; that is the handlers' job.

=============================================================================
"""

from .connection import Connection, ConnectionState
from .filesystem import FileStat, FileSystem, FileWindowReader
from .streamer import ResponseStreamer, StreamOutcome

__all__ = [
    "Connection",
    "ConnectionState",
    "FileStat",
    "FileSystem",
    "FileWindowReader",
    "ResponseStreamer",
    "StreamOutcome",
]
