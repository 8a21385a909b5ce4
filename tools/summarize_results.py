"""
Summarize variance-test results artifacts.

Prints one row per `results<lane>.txt` with sample count, mean and standard
deviation of the squared cross-track error.

Usage:
    python tools/summarize_results.py [--dir sim]
"""

import argparse
import sys
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).parent.parent))

from data.formats.data_format import LaneResult
from data.results import read_lane_results


def collect_results(results_dir: str) -> List[LaneResult]:
    """Read every results artifact in a directory, ordered by lane index."""
    results = []
    for path in Path(results_dir).glob("results*.txt"):
        try:
            results.append(read_lane_results(str(path)))
        except ValueError as e:
            print(f"Skipping {path.name}: {e}")
    return sorted(results, key=lambda r: r.lane_index)


def format_table(results: List[LaneResult]) -> str:
    lines = [
        "=" * 60,
        f"{'Lane':<6} {'Samples':<10} {'Mean':<16} {'Std dev':<16}",
        "-" * 60,
    ]
    for result in results:
        lines.append(
            f"{result.lane_index:<6} {len(result.errors):<10} "
            f"{result.mean:<16.7f} {result.standard_deviation:<16.7f}"
        )
    lines.append("=" * 60)
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Summarize variance-test results")
    parser.add_argument("--dir", type=str, default="sim", help="Results directory")
    args = parser.parse_args()

    results_dir = Path(args.dir)
    if not results_dir.exists():
        print(f"Results directory not found: {results_dir}")
        sys.exit(1)

    results = collect_results(str(results_dir))
    if not results:
        print("No results found!")
        return
    print(format_table(results))


if __name__ == "__main__":
    main()
