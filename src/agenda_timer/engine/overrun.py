"""
Overrun Analyzer

Locates the meeting's scheduled end on the topic layout. With S and E a
topic's cumulative start and end (minutes from the anchor):

    BEFORE       E <= scheduled
    STRADDLING   S < scheduled < E
    AT_BOUNDARY  S == scheduled
    AFTER        S > scheduled

A topic is overrun when S >= scheduled. The first STRADDLING or
AT_BOUNDARY topic hosts the end-of-meeting marker; no later topic does,
even a zero-minute one starting exactly on the boundary.

A missing scheduled duration normalises to 0, which puts the marker at
the top of the first topic.
"""

import logging
import math
from typing import Any, Iterable, List, Optional

from ..interfaces.agenda_models import (
    BoundaryPosition,
    OverrunClass,
    OverrunReport,
    TopicOverrun,
)
from ..normalize import add_minutes, coerce_instant, coerce_minutes
from .layout import cumulative_offsets
from .ordering import TopicCollection, resolve_ordered_topics

logger = logging.getLogger(__name__)

# Offsets are sums of float minutes; equality is tested with tolerance
BOUNDARY_TOLERANCE_MIN = 1e-9


def classify_slot(start: float, end: float, scheduled: float) -> OverrunClass:
    """Classify one slot against the scheduled end."""
    if math.isclose(start, scheduled, abs_tol=BOUNDARY_TOLERANCE_MIN):
        return OverrunClass.AT_BOUNDARY
    if start > scheduled:
        return OverrunClass.AFTER
    if end > scheduled and not math.isclose(end, scheduled, abs_tol=BOUNDARY_TOLERANCE_MIN):
        return OverrunClass.STRADDLING
    return OverrunClass.BEFORE


def boundary_offset(start: float, end: float, scheduled: float) -> float:
    """
    Fraction of the slot at which the scheduled end falls, in [0, 1].

    Zero-length slots give 0.
    """
    span = end - start
    if span <= 0:
        return 0.0
    return min(1.0, max(0.0, (scheduled - start) / span))


def boundary_position(offset: float) -> BoundaryPosition:
    # A host never ends on the boundary, so offset is below 1
    if offset <= 0.0:
        return BoundaryPosition.TOP
    return BoundaryPosition.INSIDE


def analyze_overrun(
    anchor: Any,
    topics: TopicCollection,
    order: Iterable[str],
    scheduled_minutes: Any,
    suppress_when_absent: bool = False,
) -> OverrunReport:
    """
    Classify every laid-out topic against the scheduled end.

    Args:
        anchor: Layout anchor; only used for the boundary instant and
            may be None
        topics: Topic set, keyed by id or as an iterable
        order: Topic ids in timing order
        scheduled_minutes: Scheduled meeting length, raw (number,
            numeric string or None)
        suppress_when_absent: If True and scheduled_minutes is None, no
            topic hosts the marker

    Returns:
        OverrunReport with one TopicOverrun per live topic
    """
    scheduled = coerce_minutes(scheduled_minutes)
    ordered = resolve_ordered_topics(topics, order)
    starts, ends = cumulative_offsets(ordered)

    host_found = suppress_when_absent and scheduled_minutes is None
    host_id: Optional[str] = None
    host_offset: Optional[float] = None
    entries: List[TopicOverrun] = []

    for topic, s, e in zip(ordered, starts, ends):
        s, e = float(s), float(e)
        classification = classify_slot(s, e, scheduled)

        hosts = not host_found and classification in (
            OverrunClass.STRADDLING, OverrunClass.AT_BOUNDARY
        )
        offset = None
        position = None
        if hosts:
            host_found = True
            offset = 0.0 if classification == OverrunClass.AT_BOUNDARY else boundary_offset(s, e, scheduled)
            position = boundary_position(offset)
            host_id, host_offset = topic.id, offset

        entries.append(TopicOverrun(
            topic_id=topic.id,
            classification=classification,
            start_offset_minutes=s,
            end_offset_minutes=e,
            hosts_boundary=hosts,
            boundary_offset=offset,
            boundary_position=position,
        ))

    start = coerce_instant(anchor)
    boundary_time = add_minutes(start, scheduled) if start is not None else None

    if host_id is not None:
        logger.debug(f"Scheduled end ({scheduled:g} min) on topic {host_id!r} at {host_offset:.3f}")

    return OverrunReport(
        scheduled_minutes=scheduled,
        topics=entries,
        boundary_topic_id=host_id,
        boundary_offset=host_offset,
        boundary_time=boundary_time,
    )
