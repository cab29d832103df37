#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.12"
# dependencies = ["psutil"]
# ///
"""
Benchmark script comparing span-scanning executors.

Runs the top-few CLI under each executor policy (serial, threads, processes)
with multiple trials, measures wall-clock time and peak RSS (process tree), and
reports a statistical summary. Peak RSS is the number that shows whether the
bounded final ranking keeps memory flat as key cardinality grows.

Uses psutil to track memory across the entire process tree (parent + all children),
which is essential for accurate measurement when ProcessPoolExecutor is used.
"""

import argparse
import logging
import os
import re
import shutil
import subprocess
import sys
import time
from pathlib import Path
from statistics import median

# Check for psutil early
try:
    import psutil
except ImportError:
    sys.stderr.write("ERROR: psutil is required for process-tree memory benchmarking.\n")
    sys.stderr.write("Install with: pip install psutil\n")
    sys.stderr.write("Or if using uv: uv pip install psutil\n")
    sys.exit(1)

logger = logging.getLogger(__name__)

EXECUTORS = ("serial", "threads", "processes")


def parse_elapsed_to_seconds(elapsed_str: str) -> float:
    """
    Parse elapsed time string from /usr/bin/time -v.

    Formats:
      - "m:ss.xx" (e.g., "1:23.45")
      - "h:mm:ss" (e.g., "1:02:03")
    """
    parts = elapsed_str.strip().split(":")

    if len(parts) == 2:
        return int(parts[0]) * 60 + float(parts[1])
    if len(parts) == 3:
        return int(parts[0]) * 3600 + int(parts[1]) * 60 + float(parts[2])
    raise ValueError(f"Cannot parse elapsed time: {elapsed_str}")


def parse_timev_output(stderr: str) -> tuple[float | None, float | None]:
    """
    Parse /usr/bin/time -v output from stderr.

    Returns:
        Tuple of (seconds, rss_kbytes) or (None, None) if not found.
    """
    seconds = None
    rss_kb = None

    elapsed_match = re.search(r"Elapsed \(wall clock\) time \([^)]+\):\s*(\S+)", stderr)
    if elapsed_match:
        try:
            seconds = parse_elapsed_to_seconds(elapsed_match.group(1))
        except ValueError:
            pass

    rss_match = re.search(r"Maximum resident set size \(kbytes\):\s*(\d+)", stderr)
    if rss_match:
        rss_kb = int(rss_match.group(1))

    return seconds, rss_kb


def sample_tree_rss(root_proc: psutil.Process) -> int:
    """Sum the RSS of a process and all its descendants, skipping vanished ones."""
    total_rss = 0

    try:
        total_rss += root_proc.memory_info().rss
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        pass

    try:
        children = root_proc.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return total_rss

    for child in children:
        try:
            total_rss += child.memory_info().rss
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return total_rss


def measure_peak_rss_tree(
    root_pid: int,
    poll_interval_s: float,
    proc: subprocess.Popen,
) -> int:
    """
    Measure peak RSS across the entire process tree while the process runs.

    Returns:
        Peak total RSS in bytes across the process tree.
    """
    try:
        root_proc = psutil.Process(root_pid)
    except psutil.NoSuchProcess:
        return 0

    peak_bytes = 0
    while proc.poll() is None:
        peak_bytes = max(peak_bytes, sample_tree_rss(root_proc))
        time.sleep(poll_interval_s)

    # Final sample after process exits (catch any late peak)
    return max(peak_bytes, sample_tree_rss(root_proc))


def run_benchmark(
    input_file: str,
    executor: str,
    cli_args: list[str],
    use_timev: bool,
    mem_sample_ms: int,
) -> dict:
    """
    Run the top-few CLI once and capture timing and memory metrics.

    Returns:
        Dict with keys: mode, seconds, peak_rss_tree_mib, timev_rss_mib, output.
    """
    env = os.environ.copy()
    env["TOP_FEW_EXECUTOR"] = executor
    poll_interval_s = mem_sample_ms / 1000.0

    cmd = [sys.executable, "-m", "top_few.cli", input_file, "--log-level", "WARNING", *cli_args]
    if use_timev:
        cmd = ["/usr/bin/time", "-v", *cmd]

    start_time = time.perf_counter()
    proc = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
    )

    peak_rss_bytes = measure_peak_rss_tree(proc.pid, poll_interval_s, proc)

    stdout, stderr = proc.communicate()
    elapsed_perf = time.perf_counter() - start_time

    if proc.returncode != 0:
        logger.error("Error running benchmark (%s):", executor)
        logger.error("%s", stderr)
        sys.exit(1)

    if use_timev:
        timev_seconds, timev_rss_kb = parse_timev_output(stderr)
        seconds = timev_seconds if timev_seconds is not None else elapsed_perf
        timev_rss_mib = timev_rss_kb / 1024.0 if timev_rss_kb is not None else float("nan")
    else:
        seconds = elapsed_perf
        timev_rss_mib = float("nan")

    return {
        "mode": executor,
        "seconds": seconds,
        "peak_rss_tree_mib": peak_rss_bytes / (1024 * 1024),
        "timev_rss_mib": timev_rss_mib,
        "output": stdout.strip(),
    }


def check_timev_available() -> bool:
    """Check if /usr/bin/time is available."""
    return shutil.which("/usr/bin/time") is not None


def generate_synthetic_if_needed(output_path: str, lines: int, keys: int) -> None:
    """Generate synthetic dataset if it doesn't exist."""
    if Path(output_path).exists():
        logger.info("Synthetic file already exists: %s", output_path)
        return

    generator_path = Path(__file__).parent / "generate_synthetic_keys.py"
    if not generator_path.exists():
        logger.error("Generator script not found: %s", generator_path)
        sys.exit(1)

    logger.info("Generating synthetic dataset: %s", output_path)
    cmd = [
        sys.executable,
        str(generator_path),
        "--out", output_path,
        "--lines", str(lines),
        "--keys", str(keys),
    ]
    result = subprocess.run(cmd)
    if result.returncode != 0:
        logger.error("Failed to generate synthetic dataset")
        sys.exit(1)


def compute_stats(results: list[dict]) -> dict:
    """Compute statistics from a list of benchmark results."""
    times = [r["seconds"] for r in results]
    rss_tree = [r["peak_rss_tree_mib"] for r in results]
    rss_timev = [r["timev_rss_mib"] for r in results if r["timev_rss_mib"] == r["timev_rss_mib"]]

    return {
        "median_time": median(times),
        "min_time": min(times),
        "max_time": max(times),
        "median_rss_tree": median(rss_tree),
        "median_rss_timev": median(rss_timev) if rss_timev else float("nan"),
        "output": results[0]["output"] if results else "",
    }


def run_executor_benchmark(
    input_file: str,
    executors: list[str],
    cli_args: list[str],
    use_timev: bool,
    mem_sample_ms: int,
    num_trials: int,
    num_warmup: int,
) -> None:
    """Benchmark each executor policy with rotating order to reduce bias."""
    logger.info("Warming up (%d run(s) per mode, not counted)...", num_warmup)
    for _ in range(num_warmup):
        for executor in executors:
            run_benchmark(input_file, executor, cli_args, use_timev, mem_sample_ms)
    logger.info("Warm-up complete.")
    logger.info("")

    results: dict[str, list[dict]] = {executor: [] for executor in executors}

    logger.info("Running %d trials (rotating order to reduce bias)...", num_trials)
    for trial in range(1, num_trials + 1):
        rotation = (trial - 1) % len(executors)
        order = executors[rotation:] + executors[:rotation]

        for executor in order:
            results[executor].append(
                run_benchmark(input_file, executor, cli_args, use_timev, mem_sample_ms)
            )

        summary_parts = [
            f"{executor}={results[executor][-1]['seconds']:.2f}s/"
            f"{results[executor][-1]['peak_rss_tree_mib']:.0f}MiB"
            for executor in executors
        ]
        logger.info("  Trial %d/%d: %s", trial, num_trials, ", ".join(summary_parts))

    logger.info("")

    all_stats = {executor: compute_stats(results[executor]) for executor in executors}

    # Every executor must produce the same ranking.
    outputs = {all_stats[executor]["output"] for executor in executors}
    if len(outputs) > 1:
        logger.warning("Outputs differ between executors!")
        for executor in executors:
            first_line = all_stats[executor]["output"].splitlines()[:1]
            logger.warning("  %s: %s ...", executor, first_line)

    logger.info("=" * 80)
    logger.info("RESULTS")
    logger.info("=" * 80)

    has_timev_rss = any(
        stats["median_rss_timev"] == stats["median_rss_timev"] for stats in all_stats.values()
    )

    header = (
        f"{'Executor':<12} {'Median(s)':<11} {'Min(s)':<9} {'Max(s)':<9} "
        f"{'Peak RSS Tree':<14}"
    )
    if has_timev_rss:
        header += f" {'time-v RSS':<11}"
    logger.info(header)
    logger.info("-" * 80)

    for executor in executors:
        stats = all_stats[executor]
        row = (
            f"{executor:<12} {stats['median_time']:<11.3f} "
            f"{stats['min_time']:<9.3f} {stats['max_time']:<9.3f} "
            f"{stats['median_rss_tree']:<14.1f}"
        )
        if has_timev_rss:
            row += f" {stats['median_rss_timev']:<11.1f}"
        logger.info(row)

    logger.info("-" * 80)
    logger.info("")
    logger.info("Peak RSS Tree = sum of RSS across parent + all child processes (via psutil)")
    if has_timev_rss:
        logger.info("time-v RSS    = parent process only (from /usr/bin/time -v)")

    if "serial" in all_stats and all_stats["serial"]["median_time"] > 0:
        logger.info("")
        logger.info("SPEEDUPS (serial / executor):")
        baseline = all_stats["serial"]["median_time"]
        for executor in executors:
            if executor == "serial" or all_stats[executor]["median_time"] <= 0:
                continue
            logger.info("  %-10s %.2fx", executor, baseline / all_stats[executor]["median_time"])

    logger.info("=" * 80)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark top-few span-scanning executors (time and peak RSS)."
    )
    parser.add_argument("input_file", help="Path to input data file")
    parser.add_argument(
        "--trials", type=int, default=5, help="Number of timed trials per mode (default: 5)"
    )
    parser.add_argument(
        "--warmup", type=int, default=1, help="Number of warm-up runs per mode (default: 1)"
    )
    parser.add_argument(
        "--mem-sample-ms",
        type=int,
        default=75,
        help="Memory sampling interval in milliseconds (default: 75)",
    )
    parser.add_argument(
        "--executors",
        default=",".join(EXECUTORS),
        help="Comma-separated executors to compare (default: serial,threads,processes)",
    )
    parser.add_argument(
        "--num", type=int, default=10, help="Number of keys to report (default: 10)"
    )
    parser.add_argument(
        "--regexp", default=None, help="Key regex passed through to top-few"
    )
    parser.add_argument(
        "--chunk-size", type=int, default=None, help="Span size passed through to top-few"
    )
    parser.add_argument(
        "--synthetic",
        action="store_true",
        help="Generate synthetic dataset if input_file doesn't exist",
    )
    parser.add_argument(
        "--synthetic-lines",
        type=int,
        default=10_000_000,
        help="Number of lines for synthetic data (default: 10000000)",
    )
    parser.add_argument(
        "--synthetic-keys",
        type=int,
        default=1_000_000,
        help="Number of distinct keys for synthetic data (default: 1000000)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(message)s",
        stream=sys.stderr,
    )

    executors = [name.strip() for name in args.executors.split(",") if name.strip()]
    unknown = [name for name in executors if name not in EXECUTORS]
    if not executors or unknown:
        parser.error(f"--executors must be drawn from {', '.join(EXECUTORS)}, got {args.executors}")

    input_file = args.input_file
    if args.synthetic and not Path(input_file).exists():
        generate_synthetic_if_needed(input_file, args.synthetic_lines, args.synthetic_keys)

    if not Path(input_file).exists():
        logger.error("Input file not found: %s", input_file)
        if not args.synthetic:
            logger.error("  Hint: Use --synthetic to auto-generate test data")
        sys.exit(1)

    cli_args = ["--num", str(args.num)]
    if args.regexp is not None:
        cli_args += ["--regexp", args.regexp]
    if args.chunk_size is not None:
        cli_args += ["--chunk-size", str(args.chunk_size)]

    use_timev = check_timev_available()

    logger.info("=" * 80)
    logger.info("Executor Benchmark: %s", ", ".join(executors))
    logger.info("=" * 80)
    logger.info("Input: %s", input_file)
    logger.info("Trials: %d | Warm-up runs: %d", args.trials, args.warmup)
    logger.info("top-few args: %s", " ".join(cli_args))
    logger.info("Memory sampling: %dms interval (process-tree RSS via psutil)", args.mem_sample_ms)
    logger.info("Python: %s", sys.executable)
    logger.info("Wall-clock timing: %s", "GNU time" if use_timev else "time.perf_counter()")
    logger.info("")

    run_executor_benchmark(
        input_file,
        executors,
        cli_args,
        use_timev,
        args.mem_sample_ms,
        args.trials,
        args.warmup,
    )


if __name__ == "__main__":
    main()
