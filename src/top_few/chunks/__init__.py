"""Line-aligned partitioning of large files into byte spans."""

from top_few.chunks.planner import plan_spans, plan_starts
from top_few.chunks.reader import SpanReader, iter_spans_sequential, open_span, read_span_lines
from top_few.chunks.types import BUFFER_SIZE, DEFAULT_CHUNK_SIZE, Span

__all__ = [
    "BUFFER_SIZE",
    "DEFAULT_CHUNK_SIZE",
    "Span",
    "SpanReader",
    "iter_spans_sequential",
    "open_span",
    "plan_spans",
    "plan_starts",
    "read_span_lines",
]
