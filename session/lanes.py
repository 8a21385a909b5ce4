"""
Lane sequencing for variance tests.

Each firing of the lane timer closes the lane being driven (results artifact,
accumulator cleared) and moves to the next one. When no lane is left the
timer is not rescheduled and error tracking stops.
"""

import logging
from typing import Callable, List, Optional

from data.formats.data_format import LaneResult
from data.results import write_lane_results

logger = logging.getLogger(__name__)


class LaneSequencer:
    """Walks through the lanes of a variance test."""

    def __init__(self, lane_count: int, results_dir: str, errors: List[float],
                 on_lane_selected: Callable[[int], None]):
        """
        Args:
            lane_count: Number of lanes to drive
            results_dir: Directory for `results<lane>.txt`
            errors: Squared-error accumulator shared with the session
            on_lane_selected: Called with the lane index after each switch
        """
        if lane_count < 1:
            raise ValueError("A variance test needs at least one lane")
        self.lane_count = lane_count
        self.results_dir = results_dir
        self.errors = errors
        self.on_lane_selected = on_lane_selected
        self.current_lane: Optional[int] = None
        self.finished = False
        self.results: List[LaneResult] = []

    @property
    def active(self) -> bool:
        """True while a lane is being driven."""
        return self.current_lane is not None and not self.finished

    def switch_lanes(self) -> bool:
        """
        Close the current lane and start the next.

        Returns:
            True while lanes remain (keep the timer running)
        """
        if self.finished:
            return False

        if self.current_lane is not None:
            result = write_lane_results(self.errors, self.results_dir, self.current_lane)
            if result is not None:
                self.results.append(result)
            self.errors.clear()

        next_lane = 0 if self.current_lane is None else self.current_lane + 1
        if next_lane >= self.lane_count:
            self.finished = True
            logger.info(f"[LANES_DONE] {self.lane_count} lanes tested, {len(self.results)} results written")
            return False

        self.current_lane = next_lane
        logger.info(f"[LANE_SWITCH] lane {next_lane + 1}/{self.lane_count}")
        self.on_lane_selected(next_lane)
        return True
