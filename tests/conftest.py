"""
Pytest configuration and fixtures for agenda-timer tests.
"""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from agenda_timer.interfaces.agenda_models import Meeting, MeetingStatus, Topic


@pytest.fixture
def anchor():
    """Meeting start instant used across tests."""
    return datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_topics():
    """Four-topic agenda: 10, 10, 20, 45 minutes."""
    return [
        Topic(id='1', title='Intro', duration=10),
        Topic(id='2', title='Status', duration=10),
        Topic(id='3', title='Roadmap', duration=20),
        Topic(id='4', title='Planning', duration=45),
    ]


@pytest.fixture
def sample_order():
    return ['1', '2', '3', '4']


@pytest.fixture
def running_meeting(anchor):
    """Running meeting with two ten-minute topics."""
    return Meeting(
        id='m1',
        scheduled_at=anchor,
        scheduled_duration=20,
        topic_order=('a', 'b'),
        status=MeetingStatus.RUNNING,
        started_at=anchor,
    )
