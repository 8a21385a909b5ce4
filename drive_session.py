"""
Drive session harness.
Connects the command channel, signal conditioner and cross-track error
estimator to a host vehicle under one of the session modes.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import yaml

# Add paths
sys.path.insert(0, str(Path(__file__).parent))

from bridge.command_channel import CommandPoller, ResetFlag
from bridge.learning_channel import ReinforcementChannel, action_to_command
from control.manual_input import ManualSteering
from control.signal_conditioner import SignalConditioner, build_signal_conditioner
from data.formats.data_format import ControlCommand, LaneResult, SessionFrame, TelemetryRecord, VehicleState
from data.recorder import LabelLog, SessionRecorder
from geometry.cross_track import estimate_squared_error
from geometry.path import Path as RoadPath, load_path_csv, project_onto_ground_plane
from session.episode import EpisodeMonitor, build_episode_monitor, compute_reward
from session.lanes import LaneSequencer
from session.modes import MODE_BEHAVIOR, SessionMode, parse_mode, transition
from sim.host import VehicleHost
from sim.kinematic_host import KinematicHost
from sim.scheduler import Task, TickScheduler, WaitSeconds, WaitUntil
from sim.vehicle_model import BicycleModel

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "drive_session_config.yaml"


def configure_logging(level: int = logging.INFO) -> Path:
    """Log to stderr and tmp/logs/drive_session.log."""
    log_dir = Path(__file__).parent / 'tmp' / 'logs'
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / 'drive_session.log'

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(str(log_file))
        ]
    )
    return log_file


def load_config(config_path: Optional[str] = None) -> dict:
    """Load configuration from YAML file or use defaults."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return config
    else:
        logger.warning(f"Config file not found at {config_path}, using defaults")
        return {}


@dataclass
class SessionConfig:
    """Session-level settings."""
    mode: SessionMode = SessionMode.AUTONOMOUS
    tick_hz: float = 50.0
    time_on_lane: float = 30.0
    randomize_start: bool = False
    seed: Optional[int] = None
    results_dir: str = "sim"
    bypass_conditioning_modes: tuple = (SessionMode.MANUAL, SessionMode.RECORDING)
    rl_steering_magnitude: float = 1.0
    frame_pattern: str = "sim/{index}.png"
    label_interval: float = 1.0


class DriveSessionController:
    """Runs one drive session: mode tasks, steering each tick, error tracking and resets."""

    def __init__(self, host: VehicleHost, conditioner: SignalConditioner, scheduler: TickScheduler,
                 config: SessionConfig, lanes: Optional[List[RoadPath]] = None,
                 poller: Optional[CommandPoller] = None,
                 rl_channel: Optional[ReinforcementChannel] = None,
                 reset_flag: Optional[ResetFlag] = None,
                 episode_monitor: Optional[EpisodeMonitor] = None,
                 manual: Optional[ManualSteering] = None,
                 label_log: Optional[LabelLog] = None,
                 recorder: Optional[SessionRecorder] = None):
        """
        Initialize drive session.

        Args:
            host: Simulated vehicle
            conditioner: Steering chain owned by this session (one per vehicle)
            scheduler: Cooperative tick scheduler
            config: Session settings (mode, timing, resets)
            lanes: Reference paths; lane 0 is used outside variance tests
            poller: Command channel (Autonomous, VarianceTest, Evolutionary)
            rl_channel: Action/telemetry channel (Reinforcement)
            reset_flag: Reset flag (Evolutionary)
            episode_monitor: Termination policy (Reinforcement)
            manual: Driver steering (Manual, Recording)
            label_log: Frame labels (Recording)
            recorder: Optional per-tick HDF5 recording
        """
        self.host = host
        self.conditioner = conditioner
        self.scheduler = scheduler
        self.config = config
        self.lanes = list(lanes or [])
        self.poller = poller
        self.rl_channel = rl_channel
        self.reset_flag = reset_flag
        self.episode_monitor = episode_monitor
        self.manual = manual
        self.label_log = label_log
        self.recorder = recorder

        self.mode = config.mode
        self.behavior = MODE_BEHAVIOR[self.mode]
        self._validate()

        self.lane_index = 0
        self.errors: List[float] = []
        self.raw_command = 0.0
        self.actuator_angle = 0.0
        self.recording_enabled = self.mode != SessionMode.RECORDING
        self.rng = np.random.default_rng(config.seed)
        self.lane_sequencer: Optional[LaneSequencer] = None
        self.tasks: List[Task] = []
        self.frame_id = 0
        self.reset_count = 0
        self.failed_ticks = 0
        self.started = False

    def _validate(self):
        behavior = self.behavior
        missing = []
        if behavior.polls_commands and self.poller is None:
            missing.append("poller")
        if behavior.reinforcement and (self.rl_channel is None or self.episode_monitor is None):
            missing.append("rl_channel/episode_monitor")
        if behavior.watches_reset_flag and self.reset_flag is None:
            missing.append("reset_flag")
        if behavior.manual_input and self.manual is None:
            missing.append("manual")
        if behavior.records_labels and self.label_log is None:
            missing.append("label_log")
        if (behavior.resets_on_entry or behavior.lane_sequencing) and not self.lanes:
            missing.append("lanes")
        if missing:
            raise ValueError(f"Mode '{self.mode.value}' needs: {', '.join(missing)}")

    @property
    def current_path(self) -> RoadPath:
        if not self.lanes:
            raise ValueError("No reference path loaded")
        return self.lanes[self.lane_index]

    @property
    def tracking(self) -> bool:
        """Error tracking runs while a variance-test lane is being driven."""
        return self.lane_sequencer is not None and self.lane_sequencer.active

    @property
    def finished(self) -> bool:
        """True once a variance test has run out of lanes."""
        return self.lane_sequencer is not None and self.lane_sequencer.finished

    @property
    def results(self) -> List[LaneResult]:
        return self.lane_sequencer.results if self.lane_sequencer is not None else []

    def position2d(self) -> np.ndarray:
        return project_onto_ground_plane(self.host.position())

    def start(self):
        """Enter the session mode: entry resets, timers and tasks."""
        if self.started:
            return
        self.started = True
        behavior = self.behavior
        logger.info(f"Starting drive session in {self.mode.value} mode ({len(self.lanes)} lanes)")

        self.scheduler.on_tick(self.fixed_update)

        if behavior.resets_on_entry:
            self.reset_to_start()
            if behavior.reinforcement:
                self.episode_monitor.start(self.scheduler.time)

        if behavior.lane_sequencing:
            self.lane_sequencer = LaneSequencer(
                lane_count=len(self.lanes),
                results_dir=self.config.results_dir,
                errors=self.errors,
                on_lane_selected=self._select_lane,
            )
            self.tasks.append(self.scheduler.invoke_repeating(
                self.lane_sequencer.switch_lanes, 0.0, self.config.time_on_lane, name="switch_lanes"
            ))

        if behavior.polls_commands:
            self.tasks.append(self.scheduler.start(self._poll_commands(), name="poll_commands"))

        if behavior.captures_frames:
            self.tasks.append(self.scheduler.start(self._capture_frames(), name="capture_frames"))

        if behavior.records_labels:
            self.tasks.append(self.scheduler.invoke_repeating(
                self.label_log.write, self.config.label_interval, self.config.label_interval,
                name="write_labels"
            ))

    def stop(self):
        """Stop all session tasks and close outputs."""
        for task in self.tasks:
            task.cancel()
        self.tasks = []
        if self.label_log is not None:
            self.label_log.write()
        if self.recorder is not None:
            self.recorder.close()
            self.recorder = None
        logger.info(
            f"Drive session stopped: ticks={self.scheduler.tick_count} resets={self.reset_count} "
            f"failed_ticks={self.failed_ticks} results={len(self.results)}"
        )

    def _select_lane(self, lane_index: int):
        self.lane_index = lane_index
        self.reset_to_start()
        self.mode = transition(self.mode, "first_lane_reset")

    def reset_to_start(self, randomize: bool = False):
        """
        Teleport the vehicle to the start of the current path, facing the next point.

        Args:
            randomize: Start from a random point along the path instead of index 0
        """
        path = self.current_path
        start_index = int(self.rng.integers(0, len(path) - 1)) if randomize else 0
        heading = path.heading_at(start_index)
        self.host.teleport(path[start_index], heading)
        self.reset_count += 1
        logger.info(
            f"[RESET] lane={self.lane_index} start_index={start_index} heading={heading:.1f}"
        )

    def _poll_commands(self):
        interval = self.poller.poll_interval
        while True:
            try:
                value = self.poller.poll()
            except Exception:
                logger.exception("[POLL_FAILED] keeping last command; retrying next poll")
                value = None
            if value is not None:
                self.raw_command = value
            if interval > 0.0:
                yield WaitSeconds(interval)
            else:
                yield None

    def _capture_frames(self):
        index = 0
        while True:
            if not self.recording_enabled:
                yield WaitUntil(lambda: self.recording_enabled)
            frame_file = self.host.capture_frame(index)
            if self.label_log is not None:
                if frame_file is None:
                    frame_file = self.config.frame_pattern.format(index=index)
                self.label_log.add(frame_file, self.raw_command)
            index += 1
            yield None

    def fixed_update(self, dt: float):
        """Physics tick. A failing tick keeps the last actuator angle."""
        try:
            self._update(self.scheduler.time)
        except Exception:
            self.failed_ticks += 1
            logger.exception(f"[TICK_FAILED] holding actuator angle {self.actuator_angle:.3f}")
            self.host.apply_steering(self.actuator_angle)

    def _update(self, now: float):
        behavior = self.behavior

        manual_input = self.host.manual_input()
        if manual_input.recording_axis > 0:
            self.recording_enabled = True
        elif manual_input.recording_axis < 0:
            self.recording_enabled = False

        source = "channel"
        if behavior.manual_input:
            self.raw_command = self.manual.update(manual_input)
            source = "manual"

        if behavior.watches_reset_flag and self.reset_flag.consume():
            self.reset_to_start()

        action = None
        if behavior.reinforcement:
            action = self.rl_channel.read_action()
            if action is not None:
                self.raw_command = action_to_command(
                    action, self.config.rl_steering_magnitude, self.raw_command
                )

        apply_stages = self.mode not in self.config.bypass_conditioning_modes
        self.actuator_angle = self.conditioner.condition(self.raw_command, now, apply_stages=apply_stages)
        self.host.apply_steering(self.actuator_angle)

        squared_error = None
        if self.tracking:
            squared_error = estimate_squared_error(self.current_path, self.position2d())
            self.errors.append(squared_error)

        if action is not None and not self.rl_channel.telemetry_pending():
            squared_error = self._publish_telemetry(now, squared_error)

        if self.recorder is not None:
            self._record(now, source, action, squared_error)

    def _publish_telemetry(self, now: float, squared_error: Optional[float]) -> float:
        if squared_error is None:
            squared_error = estimate_squared_error(self.current_path, self.position2d())
        done = self.episode_monitor.check(squared_error, self.host.speed(), now)
        record = TelemetryRecord(
            actuator_angle=self.actuator_angle,
            reward=compute_reward(squared_error),
            done=done,
        )
        self.rl_channel.write_telemetry(record)
        if done:
            logger.info(
                f"[EPISODE_DONE] episode={self.episode_monitor.episode_count} "
                f"squared_error={squared_error:.4f} speed={self.host.speed():.2f}"
            )
            self.reset_to_start(randomize=self.config.randomize_start)
            self.episode_monitor.start(now)
        return squared_error

    def _record(self, now: float, source: str, action, squared_error: Optional[float]):
        self.recorder.record_frame(SessionFrame(
            timestamp=now,
            frame_id=self.frame_id,
            mode=self.mode.value,
            lane_index=self.lane_index,
            vehicle_state=VehicleState(
                timestamp=now,
                position=np.asarray(self.host.position(), dtype=np.float64),
                speed=float(self.host.speed()),
                heading=float(self.host.heading()),
            ),
            control_command=ControlCommand(
                timestamp=now,
                raw=self.raw_command,
                actuator_angle=self.actuator_angle,
                action=int(action) if action is not None else None,
                source=source,
            ),
            squared_error=squared_error,
        ))
        self.frame_id += 1


def build_session_config(session_cfg: dict, reinforcement_cfg: dict, recording_cfg: dict,
                         mode: Optional[SessionMode] = None) -> SessionConfig:
    """Build a SessionConfig from the `session`, `reinforcement` and `recording` sections."""
    bypass = session_cfg.get("bypass_conditioning_modes", ["manual", "recording"])
    seed = session_cfg.get("seed")
    return SessionConfig(
        mode=mode if mode is not None else parse_mode(session_cfg.get("mode", "autonomous")),
        tick_hz=float(session_cfg.get("tick_hz", 50.0)),
        time_on_lane=float(session_cfg.get("time_on_lane", 30.0)),
        randomize_start=bool(reinforcement_cfg.get("randomize_start", False)),
        seed=int(seed) if seed is not None else None,
        results_dir=str(session_cfg.get("results_dir", "sim")),
        bypass_conditioning_modes=tuple(parse_mode(m) for m in bypass),
        rl_steering_magnitude=float(reinforcement_cfg.get("steering_magnitude", 1.0)),
        frame_pattern=str(recording_cfg.get("frame_pattern", "sim/{index}.png")),
        label_interval=float(recording_cfg.get("label_interval", 1.0)),
    )


def build_session(config: dict, host: Optional[VehicleHost] = None,
                  mode: Optional[SessionMode] = None,
                  base_dir: Optional[Path] = None,
                  recording_dir: Optional[str] = None) -> DriveSessionController:
    """
    Build a drive session from a config dictionary.

    Args:
        config: Parsed YAML configuration
        host: Vehicle host (default: headless KinematicHost stepped by the scheduler)
        mode: Overrides `session.mode`
        base_dir: Directory relative lane paths are resolved against
        recording_dir: Overrides `recording.hdf5_dir`

    Returns:
        Controller, not yet started
    """
    session_cfg = config.get('session', {})
    channel_cfg = config.get('channel', {})
    conditioner_cfg = config.get('signal_conditioner', {})
    reinforcement_cfg = config.get('reinforcement', {})
    manual_cfg = config.get('manual', {})
    recording_cfg = config.get('recording', {})
    vehicle_cfg = config.get('vehicle', {})

    session_config = build_session_config(session_cfg, reinforcement_cfg, recording_cfg, mode)
    behavior = MODE_BEHAVIOR[session_config.mode]
    base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    lanes = []
    for lane_file in session_cfg.get('lanes', []):
        lane_path = Path(lane_file)
        if not lane_path.is_absolute():
            lane_path = base_dir / lane_path
        lanes.append(load_path_csv(str(lane_path)))

    scheduler = TickScheduler(tick_hz=session_config.tick_hz)

    if host is None:
        host = KinematicHost(
            model=BicycleModel(
                wheelbase=float(vehicle_cfg.get('wheelbase', 0.914)),
                max_steering_angle=float(vehicle_cfg.get('max_steering_angle', 45.0)),
            ),
            cruise_speed=float(vehicle_cfg.get('cruise_speed', 2.0)),
            acceleration=float(vehicle_cfg.get('acceleration', 2.0)),
        )

    channel_dir = str(channel_cfg.get('directory', '/tmp'))
    poller = None
    if behavior.polls_commands:
        poller = CommandPoller(
            directory=channel_dir,
            suffix=str(channel_cfg.get('command_suffix', 'sim.txt')),
            poll_interval=float(channel_cfg.get('poll_interval', 0.0)),
        )

    rl_channel = None
    episode_monitor = None
    if behavior.reinforcement:
        rl_channel = ReinforcementChannel(
            action_path=str(channel_cfg.get('action_file', str(Path(channel_dir) / 'action.txt'))),
            info_path=str(channel_cfg.get('info_file', str(Path(channel_dir) / 'info.txt'))),
        )
        episode_monitor = build_episode_monitor(reinforcement_cfg)

    reset_flag = None
    if behavior.watches_reset_flag:
        reset_flag = ResetFlag(str(channel_cfg.get('reset_flag', str(Path(channel_dir) / 'reset.txt'))))

    manual = None
    if behavior.manual_input:
        manual = ManualSteering(
            use_wheel=bool(manual_cfg.get('use_wheel', False)),
            steering_bump=float(manual_cfg.get('steering_bump', 0.005)),
        )

    label_log = None
    if behavior.records_labels:
        label_log = LabelLog(str(recording_cfg.get('labels_path', 'sim/labels.csv')))

    recorder = None
    recording_dir = recording_dir or recording_cfg.get('hdf5_dir')
    if recording_dir:
        recorder = SessionRecorder(str(recording_dir), mode=session_config.mode.value)

    controller = DriveSessionController(
        host=host,
        conditioner=build_signal_conditioner(conditioner_cfg),
        scheduler=scheduler,
        config=session_config,
        lanes=lanes,
        poller=poller,
        rl_channel=rl_channel,
        reset_flag=reset_flag,
        episode_monitor=episode_monitor,
        manual=manual,
        label_log=label_log,
        recorder=recorder,
    )
    return controller


def run_session(controller: DriveSessionController, max_ticks: Optional[int] = None,
                duration: Optional[float] = None, realtime: bool = False) -> List[LaneResult]:
    """Start the controller, tick until a limit (or the lanes run out), then stop it."""
    controller.start()
    step = getattr(controller.host, "step", None)
    if callable(step):
        controller.scheduler.on_tick(step)
    try:
        controller.scheduler.run(
            max_ticks=max_ticks,
            duration=duration,
            realtime=realtime,
            stop=lambda: controller.finished,
        )
    except KeyboardInterrupt:
        logger.info("\nStopping drive session...")
    finally:
        controller.stop()
    return controller.results


def main():
    parser = argparse.ArgumentParser(description="Run a simulated drive session")
    parser.add_argument("--config", type=str, default=None,
                        help="Path to YAML config (default: config/drive_session_config.yaml)")
    parser.add_argument("--mode", type=str, default=None,
                        choices=[m.value for m in SessionMode],
                        help="Override session.mode")
    parser.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks")
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many simulated seconds")
    parser.add_argument("--realtime", action="store_true", help="Pace ticks at the configured rate")
    parser.add_argument("--record", type=str, default=None, help="Directory for an HDF5 session recording")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    log_file = configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    logger.info(f"Logging to {log_file}")

    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    config = load_config(str(config_path))
    mode = parse_mode(args.mode) if args.mode else None

    controller = build_session(config, mode=mode, base_dir=config_path.parent,
                               recording_dir=args.record)
    results = run_session(controller, max_ticks=args.max_ticks, duration=args.duration,
                          realtime=args.realtime)
    for result in results:
        print(f"lane {result.lane_index}: mean={result.mean:.6f} std={result.standard_deviation:.7f} "
              f"samples={len(result.errors)} -> {result.path}")


if __name__ == "__main__":
    main()
