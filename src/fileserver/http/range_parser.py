"""
=============================================================================
RANGE HEADER PARSING
=============================================================================

Turns a ``Range`` header into a list of inclusive byte windows for a
resource of known size.

=============================================================================
RANGE SYNTAX (RFC 7233)
=============================================================================

    Range: bytes=0-499          first 500 bytes
    Range: bytes=500-           everything from offset 500
    Range: bytes=-500           last 500 bytes (suffix range)
    Range: bytes=0-0,-1         first and last byte (two parts)

    ┌─────────────────────────────────────────────────────────────────────┐
    │  size = 1000                                                        │
    │                                                                     │
    │  "0-499"   → ByteRange(0, 499)                                      │
    │  "500-"    → ByteRange(500, 999)                                    │
    │  "-200"    → ByteRange(800, 999)                                    │
    │  "900-5000"→ ByteRange(900, 999)     end clamped to size - 1        │
    │  "2000-"   → skipped                 starts past the end            │
    └─────────────────────────────────────────────────────────────────────┘

Outcomes:

    list[ByteRange]              at least one satisfiable window
    RangeError.UNSATISFIABLE     well-formed, but nothing inside the file
    RangeError.MALFORMED         not parseable, or a unit other than bytes

=============================================================================
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Union


_RANGE_SPEC = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


class RangeError(Enum):
    """Sentinels returned instead of a range list."""
    UNSATISFIABLE = "unsatisfiable"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ByteRange:
    """An inclusive ``[start, end]`` window, 0-indexed."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        """Content-Range header value, e.g. ``bytes 0-99/1000``."""
        return f"bytes {self.start}-{self.end}/{size}"


RangeResult = Union[List[ByteRange], RangeError]


def parse_range(size: int, header: str, combine: bool = False) -> RangeResult:
    """
    Parse a Range header against a resource of ``size`` bytes.

    Args:
        size: Total resource length in bytes.
        header: Raw header value, e.g. ``"bytes=0-99,200-"``.
        combine: Merge overlapping and adjacent windows. Merged windows
                 keep the order in which their first member appeared.

    Returns:
        A non-empty list of ByteRange, or a RangeError sentinel.
    """
    unit, sep, specs = header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return RangeError.MALFORMED

    ranges: List[ByteRange] = []
    for spec in specs.split(","):
        match = _RANGE_SPEC.match(spec)
        if not match:
            return RangeError.MALFORMED

        first, last = match.groups()
        if not first and not last:
            return RangeError.MALFORMED

        try:
            if not first:
                # Suffix range: the final N bytes
                start = max(size - int(last), 0)
                end = size - 1
            else:
                start = int(first)
                end = int(last) if last else size - 1
        except ValueError:
            # Past the interpreter's int conversion limit
            return RangeError.MALFORMED

        end = min(end, size - 1)
        if start > end:
            continue

        ranges.append(ByteRange(start, end))

    if not ranges:
        return RangeError.UNSATISFIABLE

    return _combine(ranges) if combine else ranges


def _combine(ranges: List[ByteRange]) -> List[ByteRange]:
    """Merge overlapping/adjacent windows, preserving first-seen order."""
    indexed = sorted(enumerate(ranges), key=lambda item: item[1].start)

    merged: List[List[int]] = []  # [first_index, start, end]
    for index, current in indexed:
        if merged and current.start <= merged[-1][2] + 1:
            last = merged[-1]
            last[0] = min(last[0], index)
            last[2] = max(last[2], current.end)
        else:
            merged.append([index, current.start, current.end])

    merged.sort(key=lambda item: item[0])
    return [ByteRange(start, end) for _, start, end in merged]
