import logging
import os
import time
from collections.abc import Sequence
from functools import partial, reduce
from itertools import batched
from pathlib import Path

from top_few.chunks import DEFAULT_CHUNK_SIZE, Span, open_span, plan_spans
from top_few.counter import Counter, KeyCount, sum_counters
from top_few.errors import InputFileError
from top_few.keys import KeyFinder
from top_few.solver.execution import run_batches, select_policy

logger = logging.getLogger(__name__)

# Each task scans 16 consecutive spans and folds them into one counter.
SPANS_PER_TASK = 16


def scan_span(input_path: str, span: Span, key_finder: KeyFinder) -> Counter:
    """Tally the keys of every line owned by one span into a fresh exact counter."""
    counter = Counter()
    scratch: list[str] = []
    lines = 0
    misses = 0

    with open_span(input_path, span) as reader:
        for line in reader:
            lines += 1
            scratch.clear()
            key = key_finder.key(line, scratch)
            if key is None:
                misses += 1
                continue
            counter.add(key)

    logger.debug(
        "Span [%d, %d): start %d, %d lines, %d without key, %d distinct keys",
        span.start,
        span.end,
        reader.offset,
        lines,
        misses,
        len(counter),
    )
    return counter


def scan_spans(input_path: str, key_finder: KeyFinder, spans: Sequence[Span]) -> Counter:
    """Scan a batch of spans independently and merge their counters exactly."""
    counters = (scan_span(input_path, span, key_finder) for span in spans)
    return reduce(sum_counters, counters, Counter())


def top_few(
    input_path: str,
    key_finder: KeyFinder,
    num: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int | None = None,
) -> list[KeyCount]:
    """
    Find the `num` most frequent keys across the lines of a file.

    1. Split the file into line-aligned spans of about `chunk_size` bytes
    2. Scan batches of spans in parallel, each span into its own exact counter
    3. Merge all counters exactly, then rank through one bounded counter
    """
    if num < 0:
        raise ValueError(f"num must not be negative, got {num}")
    if num == 0:
        logger.info("Result: nothing to rank (num=0)")
        return []

    total_start = time.perf_counter()
    input_file = Path(input_path)
    input_path = str(input_file.resolve())

    try:
        with open(input_path, "rb") as handle:
            size = os.fstat(handle.fileno()).st_size
    except OSError as exc:
        raise InputFileError(f"Cannot read input file {input_path}: {exc}", path=input_path) from exc

    spans = plan_spans(chunk_size, size)
    batches = list(batched(spans, SPANS_PER_TASK))

    policy = select_policy()
    workers_desc = "auto" if workers is None else str(workers)
    logger.info(
        f"Starting: file={input_file.name}, size={size}, spans={len(spans)}, "
        f"chunk_size={chunk_size}, workers={workers_desc}, {policy.describe()}"
    )

    # Map and local reduce per task, global exact reduce here.
    t1_start = time.perf_counter()
    scan = partial(scan_spans, input_path, key_finder)
    total = Counter()

    for counter in run_batches(scan, batches, policy, workers):
        total.merge(counter)

    t1 = time.perf_counter() - t1_start
    logger.info(
        "Scan done: %d spans, %d distinct keys, %d keyed lines in %.2fs",
        len(spans),
        len(total),
        total.total(),
        t1,
    )

    # Final bounded reduction.
    t2_start = time.perf_counter()
    ranking = Counter(num).merge(total)
    result = ranking.top()
    t2 = time.perf_counter() - t2_start

    total_passes = t1 + t2
    if total_passes > 0:
        logger.debug(
            "Timing breakdown: Scan=%.2fs (%.0f%%), Rank=%.2fs (%.0f%%), threshold=%d",
            t1,
            100 * t1 / total_passes,
            t2,
            100 * t2 / total_passes,
            ranking.threshold,
        )

    total_time = time.perf_counter() - total_start
    logger.info("Result: %d keys (total %.2fs)", len(result), total_time)
    return result


def main_top_few(
    input_path: str,
    key_finder: KeyFinder,
    num: int = 10,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int | None = None,
) -> None:
    """Main entry point that prints the ranking to stdout."""
    for entry in top_few(input_path, key_finder, num, chunk_size=chunk_size, workers=workers):
        print(f"{entry.count} {entry.key}")
