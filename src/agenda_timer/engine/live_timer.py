"""
Live Timer State Machine

Given a running meeting, its topics and a clock sample, determine which
topic is active and how many seconds it has left.

States:
    IDLE             meeting not running, no started-at instant, no live
                     topics, or every topic completed
    RUNNING(topic N) N is the first incomplete topic in order

The active topic's slot starts at the meeting's started-at instant if it
is first in order, otherwise at the completion instant of the topic
before it (falling back to started-at when that is missing).

The machine keeps no state between calls. Completing a topic is an
external write; the next sample picks it up. The caller supplies `now`
and re-samples on its own cadence (once a second is enough for a
visible countdown).
"""

import logging
from datetime import datetime
from typing import Any, Optional

from ..interfaces.agenda_models import Meeting, TimerState
from ..normalize import coerce_instant, minutes_to_seconds
from .ordering import TopicCollection, resolve_ordered_topics

logger = logging.getLogger(__name__)


def compute_timer_state(
    meeting: Optional[Meeting],
    topics: TopicCollection,
    now: Any,
) -> TimerState:
    """
    Sample the live timer.

    Args:
        meeting: Meeting anchor fields (None gives IDLE)
        topics: Topic set, keyed by id or as an iterable
        now: Current time sample; naive datetimes are UTC

    Returns:
        TimerState; seconds_remaining is negative once the active topic
        overruns
    """
    if meeting is None or not meeting.is_running:
        return TimerState.idle()

    started_at = coerce_instant(meeting.started_at)
    if started_at is None:
        logger.debug(f"Meeting {meeting.id!r} running without started-at, timer idle")
        return TimerState.idle()

    sample = coerce_instant(now)
    if sample is None:
        return TimerState.idle()

    ordered = resolve_ordered_topics(topics, meeting.topic_order)
    active_index = next(
        (i for i, topic in enumerate(ordered) if not topic.is_completed),
        None,
    )
    if active_index is None:
        return TimerState.idle()

    active = ordered[active_index]
    slot_start = slot_start_for(ordered, active_index, started_at)

    # Whole seconds elapsed, truncated toward zero
    elapsed = int((sample - slot_start).total_seconds())
    remaining = minutes_to_seconds(active.duration_minutes) - elapsed

    return TimerState(
        active_topic_id=active.id,
        seconds_remaining=remaining,
        is_overtime=remaining < 0,
        active_index=active_index,
    )


def slot_start_for(ordered, index: int, started_at: datetime) -> datetime:
    """When the topic at `index` began counting down."""
    if index == 0:
        return started_at
    previous = ordered[index - 1]
    completed_at = coerce_instant(previous.completed_at)
    if completed_at is None:
        logger.debug(f"Topic {previous.id!r} has no completion instant, using meeting start")
        return started_at
    return completed_at


def format_countdown(seconds: Optional[int]) -> str:
    """
    Render seconds as MM:SS, with a leading '-' when overtime.

    Examples:
        300  -> "05:00"
        -125 -> "-02:05"
        3725 -> "62:05"
        None -> "--:--"
    """
    if seconds is None:
        return "--:--"
    sign = "-" if seconds < 0 else ""
    minutes, secs = divmod(abs(int(seconds)), 60)
    return f"{sign}{minutes:02d}:{secs:02d}"
