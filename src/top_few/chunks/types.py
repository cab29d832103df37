"""Shared constants and value types for span planning and reading."""

from dataclasses import dataclass

# 1MB buffer for efficient I/O.
BUFFER_SIZE = 1024 * 1024

# Nominal span length (64MB); a hint, lines are never cut at this boundary.
DEFAULT_CHUNK_SIZE = 1 << 26

LINE_TERMINATOR = b"\n"


@dataclass(frozen=True, slots=True)
class Span:
    """Nominal byte range [start, end) of the input assigned to one unit of work."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start
