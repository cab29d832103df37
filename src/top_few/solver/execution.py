"""Where span batches are scanned: policy selection and batch dispatch."""

import os
import sys
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass

from top_few.chunks.types import Span
from top_few.counter import Counter

type ExecutorClass = type[ThreadPoolExecutor] | type[ProcessPoolExecutor] | None
type BatchScanner = Callable[[Sequence[Span]], Counter]

# Environment variable forcing a policy: "serial", "threads" or "processes".
TOP_FEW_EXECUTOR_ENV = "TOP_FEW_EXECUTOR"

EXECUTOR_CLASSES: dict[str, ExecutorClass] = {
    "serial": None,
    "threads": ThreadPoolExecutor,
    "processes": ProcessPoolExecutor,
}


def gil_enabled() -> bool:
    """False only on a free-threaded interpreter running with the GIL off."""
    check = getattr(sys, "_is_gil_enabled", None)
    return True if check is None else check()


@dataclass(frozen=True, slots=True)
class ExecutionPolicy:
    """How span batches are dispatched for one run."""

    name: str
    gil_enabled: bool = True
    override: str = ""

    @property
    def executor_class(self) -> ExecutorClass:
        return EXECUTOR_CLASSES[self.name]

    def describe(self) -> str:
        text = f"executor={self.name}, GIL={'enabled' if self.gil_enabled else 'disabled'}"
        if self.override:
            text += f", {TOP_FEW_EXECUTOR_ENV}={self.override}"
        return text


def select_policy(environ: Mapping[str, str] | None = None) -> ExecutionPolicy:
    """
    Pick the policy from TOP_FEW_EXECUTOR, else from the GIL status.

    With the GIL on, scanning is CPU-bound Python and only processes run it in
    parallel; a free-threaded interpreter gets threads and skips pickling the
    per-batch counters. "serial" keeps everything in the calling thread, which
    is what breakpoints need. Unknown override values are ignored.
    """
    environ = os.environ if environ is None else environ
    override = environ.get(TOP_FEW_EXECUTOR_ENV, "")
    enabled = gil_enabled()

    name = override.strip().lower()
    if name not in EXECUTOR_CLASSES:
        name = "processes" if enabled else "threads"
    return ExecutionPolicy(name, gil_enabled=enabled, override=override)


def run_batches(
    scan: BatchScanner,
    batches: Iterable[Sequence[Span]],
    policy: ExecutionPolicy,
    workers: int | None = None,
) -> Iterator[Counter]:
    """
    Scan every batch under `policy`, yielding one exact counter per batch in batch order.

    The first failing batch re-raises its error here; batches still queued are
    cancelled. For the process policy `scan` must be picklable.
    """
    executor_class = policy.executor_class
    if executor_class is None:
        yield from map(scan, batches)
        return

    with executor_class(max_workers=workers) as executor:
        yield from executor.map(scan, batches)
