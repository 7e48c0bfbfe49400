"""
agenda-timer: Meeting Agenda Timing Engine

This package lays out a meeting's timed agenda items and tracks, in
real time, which item is active and how much time it has left.

Architecture:
    document store export → agenda-timer → snapshot file + /status (displays)

The engine is pure: every computation is a function of the meeting
record, the topic records and a caller-supplied clock sample. It
provides:
    1. Topic layout (start/end instants, back to back from the anchor)
    2. Overrun analysis against the scheduled meeting length
    3. Live timer (active topic, signed seconds remaining)

Version: 1.0.0
"""

__version__ = "1.0.0"

from .interfaces.agenda_models import (
    Topic,
    Meeting,
    MeetingStatus,
    CalculatedTopic,
    OverrunClass,
    BoundaryPosition,
    TopicOverrun,
    OverrunReport,
    TimerState,
    AgendaSnapshot,
)
from .engine import (
    calculate_topic_times,
    agenda_end_time,
    analyze_overrun,
    compute_timer_state,
)

__all__ = [
    "Topic",
    "Meeting",
    "MeetingStatus",
    "CalculatedTopic",
    "OverrunClass",
    "BoundaryPosition",
    "TopicOverrun",
    "OverrunReport",
    "TimerState",
    "AgendaSnapshot",
    "calculate_topic_times",
    "agenda_end_time",
    "analyze_overrun",
    "compute_timer_state",
    "__version__",
]
