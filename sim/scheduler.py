"""
Single-threaded cooperative tick scheduler.

Tasks are generators resumed at most once per tick. A task suspends by yielding:
  - None                  resume on the next tick
  - WaitSeconds(t)        resume once t seconds of simulation time have passed
  - WaitUntil(predicate)  resume on the first tick the predicate is true
Per-tick callbacks (the physics step) run after the tasks of each tick.
Stopping a task means no longer resuming it; nothing is interrupted mid-step.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generator, List, Optional

logger = logging.getLogger(__name__)

# Tolerance when comparing accumulated float tick times against wake times
TIME_EPSILON = 1e-9


@dataclass
class WaitSeconds:
    seconds: float


@dataclass
class WaitUntil:
    predicate: Callable[[], bool]


class Task:
    """Handle to a scheduled coroutine."""

    def __init__(self, routine: Generator, name: str):
        self.name = name
        self._routine = routine
        self._wake_time: Optional[float] = None
        self._predicate: Optional[Callable[[], bool]] = None
        self.finished = False
        self.cancelled = False

    @property
    def done(self) -> bool:
        return self.finished or self.cancelled

    def cancel(self):
        """Stop resuming this task."""
        if not self.done:
            self.cancelled = True
            self._routine.close()

    def _due(self, now: float) -> bool:
        if self._wake_time is not None and now + TIME_EPSILON < self._wake_time:
            return False
        if self._predicate is not None and not self._predicate():
            return False
        return True

    def _resume(self, now: float):
        self._wake_time = None
        self._predicate = None
        try:
            request = next(self._routine)
        except StopIteration:
            self.finished = True
            return
        except Exception:
            logger.exception(f"[TASK_FAILED] {self.name} raised; task retired")
            self.finished = True
            return

        if isinstance(request, WaitSeconds):
            self._wake_time = now + max(0.0, float(request.seconds))
        elif isinstance(request, WaitUntil):
            self._predicate = request.predicate
        elif request is not None:
            logger.warning(f"[TASK_YIELD] {self.name} yielded unsupported {request!r}; waiting one tick")


class TickScheduler:
    """Fixed-rate simulation clock driving cooperative tasks."""

    def __init__(self, tick_hz: float = 50.0):
        """
        Args:
            tick_hz: Physics tick rate (ticks per simulated second)
        """
        if tick_hz <= 0.0:
            raise ValueError("tick_hz must be positive")
        self.tick_hz = tick_hz
        self.dt = 1.0 / tick_hz
        self.time = 0.0
        self.tick_count = 0
        self._tasks: List[Task] = []
        self._tick_callbacks: List[Callable[[float], None]] = []

    @property
    def tasks(self) -> List[Task]:
        return [task for task in self._tasks if not task.done]

    def start(self, routine: Generator, name: Optional[str] = None) -> Task:
        """Schedule a coroutine. It runs up to its first yield immediately."""
        task = Task(routine, name or getattr(routine, "__name__", "task"))
        self._tasks.append(task)
        task._resume(self.time)
        return task

    def invoke_repeating(self, callback: Callable[[], bool], delay: float, interval: float,
                         name: Optional[str] = None) -> Task:
        """
        Call `callback` after `delay` seconds, then every `interval` seconds.

        Rescheduling continues only while the callback returns True.
        """
        if interval <= 0.0:
            raise ValueError("interval must be positive")

        def repeat():
            if delay > 0.0:
                yield WaitSeconds(delay)
            while callback():
                yield WaitSeconds(interval)

        return self.start(repeat(), name or getattr(callback, "__name__", "repeating"))

    def on_tick(self, callback: Callable[[float], None]):
        """Register a callback run every tick with the tick length (seconds)."""
        self._tick_callbacks.append(callback)

    def step(self):
        """Advance the clock by one tick."""
        self.time = (self.tick_count + 1) * self.dt
        self.tick_count += 1

        for task in list(self._tasks):
            if not task.done and task._due(self.time):
                task._resume(self.time)
        self._tasks = [task for task in self._tasks if not task.done]

        for callback in list(self._tick_callbacks):
            try:
                callback(self.dt)
            except Exception:
                logger.exception(f"[TICK_CALLBACK_FAILED] {getattr(callback, '__name__', callback)}")

    def run(self, max_ticks: Optional[int] = None, duration: Optional[float] = None,
            realtime: bool = False, stop: Optional[Callable[[], bool]] = None):
        """
        Run ticks until a limit is reached.

        Args:
            max_ticks: Maximum number of ticks (None for no limit)
            duration: Maximum simulated seconds (None for no limit)
            realtime: Sleep so ticks are paced at `tick_hz` of wall time
            stop: Optional predicate checked before each tick
        """
        start_tick = self.tick_count
        last_tick_time = time.time()
        while True:
            if max_ticks is not None and self.tick_count - start_tick >= max_ticks:
                break
            if duration is not None and self.time + TIME_EPSILON >= duration:
                break
            if stop is not None and stop():
                break

            if realtime:
                elapsed = time.time() - last_tick_time
                if elapsed < self.dt:
                    time.sleep(self.dt - elapsed)
                last_tick_time = time.time()

            self.step()
