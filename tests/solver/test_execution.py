"""Tests for executor policy selection and batch dispatch."""

from collections.abc import Sequence
from functools import partial
from itertools import batched
from pathlib import Path

import pytest

from top_few.chunks import Span, plan_spans
from top_few.counter import Counter
from top_few.errors import SpanOpenError, SpanReadError
from top_few.keys import IdentityKeyFinder
from top_few.solver import execution
from top_few.solver.execution import ExecutionPolicy, TOP_FEW_EXECUTOR_ENV, run_batches, select_policy
from top_few.solver.solve import scan_spans


class TestSelectPolicy:
    """Tests for choosing serial, threads or processes."""

    @pytest.mark.parametrize(
        ("override", "expected"),
        [("serial", "serial"), ("threads", "threads"), ("PROCESSES", "processes"), (" threads ", "threads")],
    )
    def test_override_modes(self, override: str, expected: str) -> None:
        policy = select_policy({TOP_FEW_EXECUTOR_ENV: override})
        assert policy.name == expected
        assert policy.executor_class is execution.EXECUTOR_CLASSES[expected]

    def test_auto_policy_follows_gil(self, monkeypatch) -> None:
        monkeypatch.setattr(execution, "gil_enabled", lambda: True)
        assert select_policy({}).name == "processes"

        monkeypatch.setattr(execution, "gil_enabled", lambda: False)
        assert select_policy({}).name == "threads"

    def test_unknown_override_falls_back_to_auto(self, monkeypatch) -> None:
        monkeypatch.setattr(execution, "gil_enabled", lambda: False)
        policy = select_policy({TOP_FEW_EXECUTOR_ENV: "gpu"})
        assert policy.name == "threads"
        assert policy.describe() == "executor=threads, GIL=disabled, TOP_FEW_EXECUTOR=gpu"

    def test_reads_process_environment_by_default(self, monkeypatch) -> None:
        monkeypatch.setenv(TOP_FEW_EXECUTOR_ENV, "serial")
        policy = select_policy()
        assert policy.executor_class is None
        assert policy.describe().startswith("executor=serial")


class TestRunBatches:
    """Tests for scanning span batches under each policy."""

    @pytest.fixture
    def keyed_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "keys.txt"
        lines = [f"key{i % 7}" for i in range(500)]
        path.write_text("\n".join(lines) + "\n")
        return path

    @pytest.mark.parametrize("name", ["serial", "threads", "processes"])
    def test_every_policy_yields_one_counter_per_batch(self, keyed_file: Path, name: str) -> None:
        spans = plan_spans(64, keyed_file.stat().st_size)
        batches = list(batched(spans, 4))
        scan = partial(scan_spans, str(keyed_file), IdentityKeyFinder())

        counters = list(run_batches(scan, batches, ExecutionPolicy(name), workers=2))
        assert len(counters) == len(batches)

        total = Counter()
        for counter in counters:
            assert counter.is_exact
            total.merge(counter)
        assert total.total() == 500
        assert dict(total.counts) == {f"key{i}": 500 // 7 + (1 if i < 500 % 7 else 0) for i in range(7)}

    def test_batch_order_is_preserved(self) -> None:
        def scan(batch: Sequence[Span]) -> Counter:
            counter = Counter()
            counter.add(str(batch[0].start))
            return counter

        batches = [(Span(i, i + 1),) for i in range(20)]
        counters = run_batches(scan, batches, ExecutionPolicy("threads"), workers=4)
        assert [next(iter(c.counts)) for c in counters] == [str(i) for i in range(20)]

    @pytest.mark.parametrize("name", ["serial", "threads"])
    def test_task_error_propagates(self, name: str) -> None:
        def scan(batch: Sequence[Span]) -> Counter:
            if batch[0].start == 3:
                raise SpanReadError("disk went away", span=batch[0])
            return Counter()

        batches = [(Span(i, i + 1),) for i in range(8)]
        with pytest.raises(SpanReadError) as excinfo:
            list(run_batches(scan, batches, ExecutionPolicy(name), workers=1))
        assert excinfo.value.span == Span(3, 4)

    def test_process_task_error_propagates(self, tmp_path: Path) -> None:
        missing = tmp_path / "gone.txt"
        scan = partial(scan_spans, str(missing), IdentityKeyFinder())

        with pytest.raises(SpanOpenError) as excinfo:
            list(run_batches(scan, [(Span(0, 10),)], ExecutionPolicy("processes"), workers=1))
        assert excinfo.value.span == Span(0, 10)
