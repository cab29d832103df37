#!/usr/bin/env python3
"""
Synthetic dataset generator for top-few benchmarks.

Generates a large newline-delimited file of log-like records whose keys follow
a Zipf-like distribution: a few keys are very frequent, most are rare. This
exercises both the exact span counters (many distinct keys) and the bounded
final ranking (a clear head with a long tail).

Each line looks like:
    2024-01-01T00:00:00 user=<key> action=<verb> bytes=<n>
so `--regexp 'user=(\\S+)'` or `--fields 2` select the key.
"""

import argparse
import bisect
import itertools
import random
import sys

# Large buffer for efficient streaming writes
BUFFER_SIZE = 1024 * 1024  # 1MB

ACTIONS = ("get", "put", "list", "delete", "head")


def zipf_weights(num_keys: int, exponent: float) -> list[float]:
    """Cumulative Zipf weights for ranks 1..num_keys."""
    weights = [1.0 / (rank**exponent) for rank in range(1, num_keys + 1)]
    return list(itertools.accumulate(weights))


def generate_synthetic_dataset(
    output_path: str,
    num_lines: int,
    num_keys: int,
    exponent: float,
    long_line_every: int,
    seed: int,
) -> int:
    """
    Generate a synthetic dataset of keyed records.

    Streams output line-by-line to avoid memory issues.

    Args:
        output_path: Path to output file.
        num_lines: Number of lines to write.
        num_keys: Number of distinct keys.
        exponent: Zipf exponent (higher = more skewed).
        long_line_every: Insert one very long line every N lines (0 = never).
        seed: Random seed for reproducibility.

    Returns:
        Total number of bytes written.
    """
    rng = random.Random(seed)
    cumulative = zipf_weights(num_keys, exponent)
    total_weight = cumulative[-1]
    total_bytes = 0

    with open(output_path, "w", encoding="utf-8", buffering=BUFFER_SIZE) as f:
        for i in range(num_lines):
            rank = bisect.bisect_left(cumulative, rng.random() * total_weight)
            key = f"u{rank:07d}"
            action = ACTIONS[rng.randrange(len(ACTIONS))]
            line = f"2024-01-01T00:00:{i % 60:02d} user={key} action={action} bytes={rng.randrange(1 << 20)}"

            # Occasional oversized line to cross span boundaries.
            if long_line_every and (i + 1) % long_line_every == 0:
                line += " pad=" + "x" * rng.randrange(1 << 16, 1 << 18)

            f.write(line + "\n")
            total_bytes += len(line) + 1

            # Progress indicator every 1M lines
            if (i + 1) % 1_000_000 == 0:
                print(f"  Generated {i + 1:,}/{num_lines:,} lines...", file=sys.stderr)

    return total_bytes


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate synthetic keyed-record dataset.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate ~10M lines (~700MB)
  python generate_synthetic_keys.py --out data/synthetic.txt --lines 10000000

  # Flatter distribution (harder for the bounded ranking)
  python generate_synthetic_keys.py --out data/flat.txt --exponent 0.6
""",
    )

    parser.add_argument(
        "--out",
        required=True,
        help="Output file path",
    )
    parser.add_argument(
        "--lines",
        type=int,
        default=10_000_000,
        help="Number of lines (default: 10000000)",
    )
    parser.add_argument(
        "--keys",
        type=int,
        default=1_000_000,
        help="Number of distinct keys (default: 1000000)",
    )
    parser.add_argument(
        "--exponent",
        type=float,
        default=1.1,
        help="Zipf exponent (default: 1.1)",
    )
    parser.add_argument(
        "--long-line-every",
        type=int,
        default=100_000,
        help="Write one 64-256KB line every N lines, 0 to disable (default: 100000)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=1,
        help="Random seed for reproducibility (default: 1)",
    )

    args = parser.parse_args()

    # Validate
    if args.lines < 0:
        parser.error("--lines must not be negative")
    if args.keys < 1:
        parser.error("--keys must be at least 1")
    if args.exponent <= 0:
        parser.error("--exponent must be positive")
    if args.long_line_every < 0:
        parser.error("--long-line-every must not be negative")

    # Approximate line length: ~70 chars
    approx_size_mb = (args.lines * 70) / (1024 * 1024)

    print("=" * 60, file=sys.stderr)
    print("Synthetic Key Dataset Generator", file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    print(f"Output: {args.out}", file=sys.stderr)
    print(f"Lines: {args.lines:,}", file=sys.stderr)
    print(f"Distinct keys: {args.keys:,}", file=sys.stderr)
    print(f"Zipf exponent: {args.exponent}", file=sys.stderr)
    print(f"Long line every: {args.long_line_every:,}", file=sys.stderr)
    print(f"Seed: {args.seed}", file=sys.stderr)
    print(f"Estimated size: ~{approx_size_mb:.1f} MB", file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    print(file=sys.stderr)

    # Generate
    print("Generating...", file=sys.stderr)
    total_bytes = generate_synthetic_dataset(
        output_path=args.out,
        num_lines=args.lines,
        num_keys=args.keys,
        exponent=args.exponent,
        long_line_every=args.long_line_every,
        seed=args.seed,
    )

    print(file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    print(f"Done! Wrote {args.lines:,} lines ({total_bytes:,} bytes) to {args.out}", file=sys.stderr)
    print("=" * 60, file=sys.stderr)


if __name__ == "__main__":
    main()
