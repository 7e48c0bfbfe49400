"""
Time Layout Engine

Places topics back-to-back from an anchor instant:

    anchor ─┬─ topic 1 ─┬─ topic 2 ─┬─ ... ─┬─ topic n ─┐
            S1         E1=S2       E2=S3          En

Start of topic i is anchor + sum(d1..d(i-1)) minutes; end is start + di.
Slots are gapless and non-overlapping. Zero-minute topics occupy a
zero-width slot. Durations are normalised before any arithmetic, so a
stored "10" sums the same as 10. Instants past the datetime range
saturate at the last representable instant.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from ..interfaces.agenda_models import CalculatedTopic, Topic
from ..normalize import add_minutes, coerce_instant
from .ordering import TopicCollection, resolve_ordered_topics

logger = logging.getLogger(__name__)


def cumulative_offsets(topics: List[Topic]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Start and end offsets (minutes from the anchor) for each topic.

    Starts are taken from the shifted cumulative sum rather than
    ends - durations, so end[i] == start[i+1] exactly.
    """
    durations = np.array([t.duration_minutes for t in topics], dtype=np.float64)
    ends = np.cumsum(durations)
    starts = np.concatenate(([0.0], ends[:-1])) if len(ends) else ends.copy()
    return starts, ends


def calculate_topic_times(
    anchor: Any,
    topics: TopicCollection,
    order: Iterable[str],
) -> List[CalculatedTopic]:
    """
    Compute start and end times for each topic in order.

    Args:
        anchor: Start instant (planned start, or actual start once running)
        topics: Topic set, keyed by id or as an iterable
        order: Topic ids in timing order

    Returns:
        CalculatedTopic list in ordering sequence; empty if the anchor
        cannot be read
    """
    start = coerce_instant(anchor)
    if start is None:
        logger.debug(f"No usable anchor ({anchor!r}), empty layout")
        return []

    ordered = resolve_ordered_topics(topics, order)
    starts, ends = cumulative_offsets(ordered)

    return [
        CalculatedTopic(
            topic=topic,
            start_time=add_minutes(start, float(s)),
            end_time=add_minutes(start, float(e)),
            start_offset_minutes=float(s),
            end_offset_minutes=float(e),
        )
        for topic, s, e in zip(ordered, starts, ends)
    ]


def total_minutes(topics: TopicCollection, order: Iterable[str]) -> float:
    """Sum of normalised durations of the live, ordered topics."""
    ordered = resolve_ordered_topics(topics, order)
    return float(sum(t.duration_minutes for t in ordered))


def agenda_end_time(
    anchor: Any,
    topics: TopicCollection,
    order: Iterable[str],
) -> Optional[datetime]:
    """
    When the agenda finishes if every topic takes its allotted time.

    This is the anchor plus the total planned minutes, independent of
    the meeting's scheduled duration.
    """
    start = coerce_instant(anchor)
    if start is None:
        return None
    return add_minutes(start, total_minutes(topics, order))
