#!/usr/bin/env python3
"""
agenda-timer: Meeting Agenda Timing Engine

Main entry point for the agenda-timer monitor. This service:
1. Reads a meeting and its topics from a document store export (JSON)
2. Lays the topics out from the meeting's anchor instant
3. Locates the scheduled end on that layout
4. Samples the live timer (active topic, seconds remaining)
5. Publishes an AgendaSnapshot to a JSON file and, optionally, HTTP

Usage:
    # One-shot: print the agenda at the current time
    agenda-timer --meeting meeting.json

    # One-shot at a fixed instant
    agenda-timer --meeting meeting.json --now 2026-03-02T10:05:00Z

    # Follow a running meeting, re-reading the export every second
    agenda-timer --config /etc/agenda-timer/config.toml --watch

Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        agenda-timer                          │
    │                                                              │
    │  ┌────────────┐   ┌───────────────────┐   ┌──────────────┐   │
    │  │  meeting   │──▶│ layout / overrun  │──▶│ AgendaSnapshot│  │
    │  │  export    │   │ live timer (now)  │   │              │   │
    │  └────────────┘   └───────────────────┘   └──────────────┘   │
    │                                                  │           │
    │                        ┌─────────────────────────┴───────┐   │
    │                        ▼                                 ▼   │
    │               /tmp/agenda_timer.json             GET /status │
    └──────────────────────────────────────────────────────────────┘

The engine never reads the clock; the monitor samples it once per tick
and passes it in.
"""

import argparse
import json
import logging
import signal
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import toml

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('agenda-timer')

from .interfaces.agenda_models import (
    AgendaSnapshot,
    Meeting,
    MeetingStatus,
    Topic,
)
from .engine import (
    agenda_end_time,
    analyze_overrun,
    calculate_topic_times,
    compute_timer_state,
    format_countdown,
)
from .normalize import coerce_instant
from .output.snapshot_writer import SnapshotWriter


class MeetingFileError(ValueError):
    """Meeting export missing, unreadable or structurally invalid."""


def load_meeting_file(path: Any) -> Tuple[Meeting, List[Topic]]:
    """
    Load a meeting export.

    Expected shape:
        {"meeting": {...}, "topics": [{...}, ...]}

    `topics` may also be an object keyed by topic id, in which case a
    record without its own "id" takes the key.

    Raises:
        MeetingFileError: file missing, not JSON, or wrong shape
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise MeetingFileError(f"Meeting file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise MeetingFileError(f"Cannot read meeting file {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get('meeting'), dict):
        raise MeetingFileError(f"{path}: expected an object with a 'meeting' object")

    raw_topics = data.get('topics', [])
    if isinstance(raw_topics, dict):
        records = [dict(record, id=record.get('id', key))
                   for key, record in raw_topics.items() if isinstance(record, dict)]
    elif isinstance(raw_topics, list):
        records = [record for record in raw_topics if isinstance(record, dict)]
    else:
        raise MeetingFileError(f"{path}: 'topics' must be a list or an object")

    meeting = Meeting.from_record(data['meeting'])
    topics = [Topic.from_record(record) for record in records]
    return meeting, topics


def build_snapshot(
    meeting: Meeting,
    topics: List[Topic],
    now: datetime,
    poll_count: int = 0
) -> AgendaSnapshot:
    """
    Run the whole engine for one clock sample.

    Args:
        meeting: Meeting anchor fields
        topics: Topic records
        now: Clock sample
        poll_count: Monitor tick counter carried into the snapshot

    Returns:
        AgendaSnapshot
    """
    anchor = meeting.anchor
    return AgendaSnapshot(
        meeting_id=meeting.id,
        status=meeting.status,
        sampled_at=now,
        anchor=anchor,
        end_time=agenda_end_time(anchor, topics, meeting.topic_order),
        topics=calculate_topic_times(anchor, topics, meeting.topic_order),
        overrun=analyze_overrun(anchor, topics, meeting.topic_order, meeting.scheduled_duration),
        timer=compute_timer_state(meeting, topics, now),
        poll_count=poll_count,
    )


def render_agenda(snapshot: AgendaSnapshot) -> str:
    """Plain-text agenda for the terminal (times in UTC)."""
    lines = [f"Meeting {snapshot.meeting_id or '?'} [{snapshot.status.value}]"]
    overrun = snapshot.overrun

    for calculated in snapshot.topics:
        topic = calculated.topic
        marks = []
        if topic.is_completed:
            marks.append('done')
        if calculated.id == snapshot.timer.active_topic_id:
            marks.append(f"active {format_countdown(snapshot.timer.seconds_remaining)}")
        entry = overrun.get(calculated.id) if overrun else None
        if entry is not None and entry.is_overrun:
            marks.append('overrun')
        line = (
            f"  {calculated.start_time:%H:%M}-{calculated.end_time:%H:%M}  "
            f"{calculated.duration_minutes:5g}m  {topic.title or topic.id}"
        )
        if marks:
            line += f"  ({', '.join(marks)})"
        if entry is not None and entry.hosts_boundary and overrun.boundary_time is not None:
            line += (f"  <- scheduled end {overrun.boundary_time:%H:%M} "
                     f"at {entry.boundary_offset:.0%}")
        lines.append(line)

    if not snapshot.topics:
        lines.append("  (no topics)")
    if snapshot.end_time is not None:
        lines.append(f"Agenda ends {snapshot.end_time:%H:%M} UTC")
    return '\n'.join(lines)


class AgendaMonitor:
    """
    Main agenda-timer monitor.

    Re-reads the meeting export on every tick so edits made elsewhere
    (completions, reorders, deletions) show up on the next sample, and
    publishes the result to the snapshot file.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        meeting_file: Optional[str] = None,
        snapshot_path: Optional[str] = None
    ):
        """
        Initialize the monitor.

        Args:
            config: Configuration dictionary
            meeting_file: Override meeting export path
            snapshot_path: Override snapshot output path
        """
        self.config = config
        self.meeting_file = Path(
            meeting_file or config.get('meeting', {}).get('file', 'meeting.json')
        )
        self.poll_interval = float(config.get('poll_interval', 1.0))
        self.snapshot_path = (snapshot_path or
                              config.get('output', {}).get('snapshot_path', SnapshotWriter.DEFAULT_PATH))

        self.writer = SnapshotWriter(self.snapshot_path)

        # State
        self.running = False
        self.poll_count = 0
        self.last_snapshot: Optional[AgendaSnapshot] = None

        logger.info("=" * 60)
        logger.info("agenda-timer initializing")
        logger.info(f"  Meeting file: {self.meeting_file}")
        logger.info(f"  Snapshot output: {self.snapshot_path}")
        logger.info(f"  Poll interval: {self.poll_interval}s")
        logger.info("=" * 60)

    def tick(self, now: Optional[datetime] = None) -> AgendaSnapshot:
        """
        Take one clock sample and publish the snapshot.

        Args:
            now: Clock sample (default: current UTC time)

        Raises:
            MeetingFileError: if the export cannot be loaded
        """
        now = now or datetime.now(timezone.utc)
        meeting, topics = load_meeting_file(self.meeting_file)

        self.poll_count += 1
        snapshot = build_snapshot(meeting, topics, now, poll_count=self.poll_count)
        self._log_transition(self.last_snapshot, snapshot)

        self.writer.write(snapshot)
        self.last_snapshot = snapshot
        return snapshot

    def _log_transition(self, previous: Optional[AgendaSnapshot], current: AgendaSnapshot):
        """Log status, active topic and overtime changes."""
        if previous is None or previous.status != current.status:
            logger.info(f"Meeting {current.meeting_id!r} is {current.status.value}")

        prev_timer = previous.timer if previous else None
        timer = current.timer
        if prev_timer is None or prev_timer.active_topic_id != timer.active_topic_id:
            if timer.is_idle:
                logger.info("Timer idle")
            else:
                logger.info(
                    f"Active topic {timer.active_topic_id!r} "
                    f"({format_countdown(timer.seconds_remaining)} left)"
                )
        elif timer.is_overtime and not prev_timer.is_overtime:
            logger.warning(f"Topic {timer.active_topic_id!r} is over time")

    def start(self):
        """Poll until stopped or the meeting ends."""
        logger.info("Starting agenda-timer monitor")

        self.running = True

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self._main_loop()
        finally:
            self._cleanup()

    def _main_loop(self):
        """Main polling loop."""
        logger.info("Entering main loop")

        while self.running:
            try:
                snapshot = self.tick()
                if snapshot.status == MeetingStatus.ENDED:
                    logger.info("Meeting ended, stopping")
                    self.running = False
                    break
            except MeetingFileError as e:
                logger.warning(str(e))
            except Exception as e:
                logger.exception(f"Error in main loop iteration: {e}")

            time.sleep(self.poll_interval)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        self.running = False

    def _cleanup(self):
        """Log final counters on shutdown."""
        logger.info(f"Took {self.poll_count} samples")
        logger.info("agenda-timer stopped")


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from TOML file."""
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            return toml.load(f)

    # Default configuration
    return {
        'poll_interval': 1.0,
        'meeting': {
            'file': 'meeting.json'
        },
        'output': {
            'snapshot_path': SnapshotWriter.DEFAULT_PATH,
            'health_port': 0
        }
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='agenda-timer: Meeting Agenda Timing Engine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Print the agenda now
    agenda-timer --meeting meeting.json

    # Print the agenda at a fixed instant
    agenda-timer --meeting meeting.json --now 2026-03-02T10:05:00Z

    # Follow a running meeting with an HTTP status endpoint
    agenda-timer -c config.toml --watch --health-port 8080
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--meeting', '-m',
        help='Meeting export JSON (overrides config)'
    )
    parser.add_argument(
        '--output', '-o',
        help='Snapshot output path (overrides config)'
    )
    parser.add_argument(
        '--now',
        help='Clock sample as ISO-8601 for a one-shot run (default: current time)'
    )
    parser.add_argument(
        '--watch',
        action='store_true',
        help='Keep sampling until the meeting ends or on SIGINT/SIGTERM'
    )
    parser.add_argument(
        '--interval',
        type=float,
        help='Seconds between samples in watch mode (default: 1.0)'
    )
    parser.add_argument(
        '--health-port',
        type=int,
        help='HTTP port for /health, /status, /metrics (0 to disable)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    # Apply command-line overrides
    if args.meeting:
        config.setdefault('meeting', {})['file'] = args.meeting
    if args.output:
        config.setdefault('output', {})['snapshot_path'] = args.output
    if args.interval is not None:
        config['poll_interval'] = args.interval
    if args.health_port is not None:
        config.setdefault('output', {})['health_port'] = args.health_port

    now = None
    if args.now:
        now = coerce_instant(args.now)
        if now is None:
            logger.error(f"Cannot parse --now value {args.now!r}")
            return 2

    monitor = AgendaMonitor(config)

    if not args.watch:
        try:
            snapshot = monitor.tick(now)
        except MeetingFileError as e:
            logger.error(str(e))
            return 1
        print(render_agenda(snapshot))
        return 0

    health_server = None
    health_port = config.get('output', {}).get('health_port', 0)
    if health_port > 0:
        from .output.health_server import HealthServer
        health_server = HealthServer(port=health_port)
        health_server.set_monitor(monitor)
        health_server.start()

    try:
        monitor.start()
    finally:
        if health_server:
            health_server.stop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
