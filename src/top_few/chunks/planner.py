"""Split a byte length into nominal, contiguous spans."""

from top_few.chunks.types import Span


def plan_starts(chunk_size: int, total_bytes: int) -> list[int]:
    """
    Compute tentative span start offsets: 0, chunk_size, 2*chunk_size, ...

    Stops before an offset that would reach or exceed total_bytes, but always
    returns at least [0] so an empty file still gets one (zero-length) span.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    if total_bytes < 0:
        raise ValueError(f"total_bytes must not be negative, got {total_bytes}")

    # ceil(total_bytes / chunk_size), minimum 1.
    count = max(1, -(-total_bytes // chunk_size))
    return [i * chunk_size for i in range(count)]


def plan_spans(chunk_size: int, total_bytes: int) -> list[Span]:
    """Build the ordered list of nominal spans covering [0, total_bytes)."""
    return [
        Span(start, min(total_bytes, start + chunk_size))
        for start in plan_starts(chunk_size, total_bytes)
    ]
