"""
Variance-test results artifacts.

One line per squared error at 7 decimals, then a trailer line:
    Standard deviation: <value>
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from data.formats.data_format import LaneResult

logger = logging.getLogger(__name__)

ERROR_FORMAT = "{:.7f}"
TRAILER_PREFIX = "Standard deviation: "


def summarize_errors(errors: Sequence[float]):
    """Return (mean, population standard deviation) of a non-empty error sequence."""
    if len(errors) == 0:
        raise ValueError("Cannot summarize an empty error sequence")
    values = np.asarray(errors, dtype=np.float64)
    return float(np.mean(values)), float(np.std(values))


def format_results(errors: Sequence[float], standard_deviation: float) -> str:
    lines = [ERROR_FORMAT.format(float(e)) for e in errors]
    lines.append(TRAILER_PREFIX + ERROR_FORMAT.format(standard_deviation))
    return "\n".join(lines) + "\n"


def results_path(results_dir: str, lane_index: int) -> Path:
    return Path(results_dir) / f"results{lane_index}.txt"


def write_lane_results(errors: Sequence[float], results_dir: str,
                       lane_index: int) -> Optional[LaneResult]:
    """
    Write the results artifact for one lane.

    Args:
        errors: Squared errors recorded on the lane, in tick order
        results_dir: Directory for results artifacts
        lane_index: Lane number, used in the file name

    Returns:
        LaneResult, or None if no errors were recorded (nothing is written)
    """
    if len(errors) == 0:
        logger.warning(f"[RESULTS_EMPTY] lane {lane_index} recorded no errors; no results written")
        return None

    mean, std = summarize_errors(errors)
    output = results_path(results_dir, lane_index)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(format_results(errors, std), encoding="utf-8")
    logger.info(
        f"[RESULTS] lane={lane_index} samples={len(errors)} mean={mean:.6f} std={std:.7f} -> {output}"
    )
    return LaneResult(
        lane_index=lane_index,
        mean=mean,
        standard_deviation=std,
        errors=[float(e) for e in errors],
        path=str(output),
    )


def read_lane_results(path: str) -> LaneResult:
    """Parse a results artifact back into a LaneResult (mean recomputed from the lines)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Results file not found: {path}")

    errors = []
    std = None
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line:
            continue
        if line.startswith(TRAILER_PREFIX):
            std = float(line[len(TRAILER_PREFIX):])
        else:
            errors.append(float(line))
    if std is None:
        raise ValueError(f"Missing '{TRAILER_PREFIX.strip()}' trailer in {path}")

    stem = path.stem
    lane_index = int(stem[len("results"):]) if stem[len("results"):].isdigit() else -1
    mean = float(np.mean(errors)) if errors else float("nan")
    return LaneResult(lane_index=lane_index, mean=mean, standard_deviation=std,
                      errors=errors, path=str(path))
