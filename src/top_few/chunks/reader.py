"""Line-aligned reading of a single span."""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

from top_few.chunks.planner import plan_spans
from top_few.chunks.types import BUFFER_SIZE, LINE_TERMINATOR, Span
from top_few.errors import SpanOpenError, SpanReadError

logger = logging.getLogger(__name__)


def decode_line(raw_line: bytes) -> str:
    """Strip one line terminator (LF or CRLF) and decode as UTF-8."""
    if raw_line.endswith(LINE_TERMINATOR):
        raw_line = raw_line[:-1]
        if raw_line.endswith(b"\r"):
            raw_line = raw_line[:-1]
    return raw_line.decode("utf-8", errors="replace")


class SpanReader:
    """
    Lazy line iterator over one span of a seekable binary stream.

    Every physical line belongs to the span whose nominal start falls at or
    before the line's first byte. A span whose start lands inside a line
    discards that partial line; a line running past the nominal end is still
    delivered whole by the span that began it.

    Attributes:
        span: Nominal byte range of this reader.
        offset: Resolved start, i.e. the first byte of the first owned line.
        position: Bytes consumed so far. Once iteration finishes it is the
            offset a sequential caller can hand to the next span as `consumed`.
    """

    def __init__(self, handle: BinaryIO, span: Span, consumed: int | None = None):
        self._handle = handle
        self.span = span
        self.offset = self._resolve_start(consumed)
        self.position = self.offset

    def _starts_mid_line(self, consumed: int | None) -> bool:
        start = self.span.start
        if start == 0:
            return False

        # Sequential hand-off: the previous span tells us where it stopped.
        if consumed is not None:
            if consumed > start:
                return True
            if consumed == start:
                return False

        # Self-sufficient probe of the single byte before our start.
        try:
            self._handle.seek(start - 1)
            probe = self._handle.read(1)
        except OSError as exc:
            logger.debug("Boundary probe failed at offset %d, not skipping: %s", start - 1, exc)
            return False

        if len(probe) != 1:
            return False
        return probe != LINE_TERMINATOR

    def _resolve_start(self, consumed: int | None) -> int:
        skip = self._starts_mid_line(consumed)
        self._handle.seek(self.span.start)
        if not skip:
            return self.span.start

        partial = self._handle.readline()
        return self.span.start + len(partial)

    def __iter__(self) -> Iterator[str]:
        while self.position < self.span.end:
            try:
                raw_line = self._handle.readline()
            except OSError as exc:
                raise SpanReadError(
                    f"Cannot read span [{self.span.start}, {self.span.end}) at offset {self.position}: {exc}",
                    path=getattr(self._handle, "name", None),
                    span=self.span,
                ) from exc
            if not raw_line:
                return
            self.position += len(raw_line)
            yield decode_line(raw_line)


@contextmanager
def open_span(path: str, span: Span, consumed: int | None = None) -> Iterator[SpanReader]:
    """
    Open the input independently for one span and yield its reader.

    A failure to open (or position) the handle mid-run is fatal: dropping a
    span would silently lose its share of the counts.
    """
    try:
        handle = open(path, "rb", buffering=BUFFER_SIZE)  # noqa: SIM115
    except OSError as exc:
        raise SpanOpenError(
            f"Cannot open {path} for span [{span.start}, {span.end}): {exc}",
            path=path,
            span=span,
        ) from exc

    with handle:
        try:
            reader = SpanReader(handle, span, consumed)
        except OSError as exc:
            raise SpanOpenError(
                f"Cannot position {path} at span [{span.start}, {span.end}): {exc}",
                path=path,
                span=span,
            ) from exc
        yield reader


def read_span_lines(path: str, span: Span) -> Iterator[str]:
    """Yield the lines owned by one span."""
    with open_span(path, span) as reader:
        yield from reader


def iter_spans_sequential(path: str, chunk_size: int) -> Iterator[list[str]]:
    """
    Read spans in order, handing each span the offset its predecessor reached.

    Produces the same partition as independent probing, but every span depends
    on the previous one, so it cannot be parallelized.
    """
    consumed: int | None = None
    for span in plan_spans(chunk_size, os.path.getsize(path)):
        with open_span(path, span, consumed) as reader:
            lines = list(reader)
            consumed = reader.position
        yield lines
