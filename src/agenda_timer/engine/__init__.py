"""Agenda timing engine - layout, overrun boundary, live timer.

Contains:
- calculate_topic_times: back-to-back topic layout from an anchor
- analyze_overrun: where the scheduled end falls on the layout
- compute_timer_state: active topic and signed countdown at a clock sample
"""

from .layout import agenda_end_time, calculate_topic_times, total_minutes
from .live_timer import compute_timer_state, format_countdown
from .ordering import resolve_ordered_topics
from .overrun import analyze_overrun

__all__ = [
    'calculate_topic_times', 'agenda_end_time', 'total_minutes',
    'analyze_overrun', 'compute_timer_state', 'format_countdown',
    'resolve_ordered_topics',
]
