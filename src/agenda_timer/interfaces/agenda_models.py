"""
Agenda Data Models

These dataclasses define the contract between agenda-timer and its
consumers. Input records (topics and meetings) are read from the
document store export; derived values (calculated topics, overrun
report, timer state) are recomputed on every data change or clock tick
and never persisted. The AgendaSnapshot is serialized to JSON and
written to the snapshot file for consumption by display clients.

Contract Version: 1.0.0
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import json

from ..normalize import coerce_flag, coerce_instant, coerce_minutes


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class MeetingStatus(str, Enum):
    """Meeting lifecycle status."""
    PLANNING = "planning"   # Agenda being edited, layout only
    RUNNING = "running"     # Live, timer active
    ENDED = "ended"         # Archived, read-only

    @classmethod
    def parse(cls, value: Any) -> "MeetingStatus":
        """Unknown or missing status is treated as planning."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PLANNING


class OverrunClass(str, Enum):
    """Where a topic's slot lies relative to the scheduled end."""
    BEFORE = "before"             # E <= scheduled
    STRADDLING = "straddling"     # S < scheduled < E
    AT_BOUNDARY = "at_boundary"   # S == scheduled
    AFTER = "after"               # S > scheduled


class BoundaryPosition(str, Enum):
    """
    Where the scheduled-end marker sits on its hosting topic.

    The host either starts on the scheduled end or strictly straddles
    it, so the marker is never at the very bottom of a slot.
    """
    TOP = "top"         # offset 0
    INSIDE = "inside"   # 0 < offset < 1


@dataclass(frozen=True)
class Topic:
    """
    A single timed agenda item.

    `duration` is kept exactly as it arrived from the store (it may be a
    number or a numeric string); use `duration_minutes` for arithmetic.
    """
    id: str
    duration: Any = 0                    # minutes, raw
    title: str = ""
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    is_deleted: bool = False
    owner_name: Optional[str] = None
    topic_type: str = "discussion"       # presentation, discussion, decision, break

    @property
    def duration_minutes(self) -> float:
        return coerce_minutes(self.duration)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Topic":
        """Build from a store record (camelCase keys, as exported)."""
        return cls(
            id=str(record.get("id", "")),
            duration=record.get("duration", 0),
            title=record.get("title") or "",
            is_completed=coerce_flag(record.get("isCompleted")),
            completed_at=coerce_instant(record.get("completedAt")),
            is_deleted=coerce_flag(record.get("isDeleted")),
            owner_name=record.get("ownerName"),
            topic_type=record.get("type") or "discussion",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "duration": self.duration_minutes,
            "isCompleted": self.is_completed,
            "completedAt": _iso(self.completed_at),
            "isDeleted": self.is_deleted,
            "ownerName": self.owner_name,
            "type": self.topic_type,
        }


@dataclass(frozen=True)
class Meeting:
    """
    Meeting anchor fields.

    `scheduled_duration` is raw like Topic.duration; None means the
    record carried no value at all.
    """
    id: str
    scheduled_at: Optional[datetime] = None
    scheduled_duration: Any = None       # minutes, raw
    topic_order: Tuple[str, ...] = ()
    status: MeetingStatus = MeetingStatus.PLANNING
    started_at: Optional[datetime] = None
    title: str = ""
    timezone: str = "UTC"

    @property
    def scheduled_minutes(self) -> float:
        return coerce_minutes(self.scheduled_duration)

    @property
    def is_running(self) -> bool:
        return self.status == MeetingStatus.RUNNING

    @property
    def anchor(self) -> Optional[datetime]:
        """Layout anchor: actual start once running, else the planned start."""
        if self.is_running and self.started_at is not None:
            return self.started_at
        return self.scheduled_at

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Meeting":
        order = record.get("topicOrder") or []
        if isinstance(order, str) or not isinstance(order, (list, tuple)):
            order = []
        return cls(
            id=str(record.get("id", "")),
            scheduled_at=coerce_instant(record.get("scheduledAt")),
            scheduled_duration=record.get("scheduledDuration"),
            topic_order=tuple(str(topic_id) for topic_id in order),
            status=MeetingStatus.parse(record.get("status")),
            started_at=coerce_instant(record.get("startedAt")),
            title=record.get("title") or "",
            timezone=record.get("timezone") or "UTC",
        )


@dataclass(frozen=True)
class CalculatedTopic:
    """A topic placed on the timeline. Ephemeral, never persisted."""
    topic: Topic
    start_time: datetime
    end_time: datetime
    start_offset_minutes: float      # relative to the anchor
    end_offset_minutes: float

    @property
    def id(self) -> str:
        return self.topic.id

    @property
    def duration_minutes(self) -> float:
        return self.end_offset_minutes - self.start_offset_minutes

    def to_dict(self) -> dict:
        result = self.topic.to_dict()
        result.update({
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "startOffsetMinutes": self.start_offset_minutes,
            "endOffsetMinutes": self.end_offset_minutes,
        })
        return result


@dataclass(frozen=True)
class TopicOverrun:
    """Relationship of one topic to the scheduled end of the meeting."""
    topic_id: str
    classification: OverrunClass
    start_offset_minutes: float
    end_offset_minutes: float
    hosts_boundary: bool = False
    boundary_offset: Optional[float] = None          # 0-1, host only
    boundary_position: Optional[BoundaryPosition] = None

    @property
    def is_overrun(self) -> bool:
        """Slot starts at or after the scheduled end."""
        return self.classification in (OverrunClass.AT_BOUNDARY, OverrunClass.AFTER)

    @property
    def is_overrun_container(self) -> bool:
        """Scheduled end falls strictly inside this slot."""
        return self.classification == OverrunClass.STRADDLING

    def to_dict(self) -> dict:
        result = asdict(self)
        result["classification"] = self.classification.value
        if self.boundary_position is not None:
            result["boundary_position"] = self.boundary_position.value
        result["is_overrun"] = self.is_overrun
        result["is_overrun_container"] = self.is_overrun_container
        return {k: v for k, v in result.items() if v is not None}


@dataclass(frozen=True)
class OverrunReport:
    """Overrun classification for a whole layout."""
    scheduled_minutes: float
    topics: List[TopicOverrun] = field(default_factory=list)
    boundary_topic_id: Optional[str] = None
    boundary_offset: Optional[float] = None
    boundary_time: Optional[datetime] = None

    @property
    def overrun_count(self) -> int:
        return sum(1 for t in self.topics if t.is_overrun)

    def get(self, topic_id: str) -> Optional[TopicOverrun]:
        for entry in self.topics:
            if entry.topic_id == topic_id:
                return entry
        return None

    def to_dict(self) -> dict:
        return {
            "scheduled_minutes": self.scheduled_minutes,
            "boundary_topic_id": self.boundary_topic_id,
            "boundary_offset": self.boundary_offset,
            "boundary_time": _iso(self.boundary_time),
            "overrun_count": self.overrun_count,
            "topics": [t.to_dict() for t in self.topics],
        }


@dataclass(frozen=True)
class TimerState:
    """
    Live timer output. Recomputed on every clock tick.

    seconds_remaining is signed: negative means the active topic has
    run past its allotted time.
    """
    active_topic_id: Optional[str] = None
    seconds_remaining: Optional[int] = None
    is_overtime: bool = False
    active_index: Optional[int] = None

    @property
    def is_idle(self) -> bool:
        return self.active_topic_id is None

    @classmethod
    def idle(cls) -> "TimerState":
        return cls()

    def to_dict(self) -> dict:
        return {
            "activeTopicId": self.active_topic_id,
            "secondsRemaining": self.seconds_remaining,
            "isOvertime": self.is_overtime,
            "activeIndex": self.active_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimerState":
        return cls(
            active_topic_id=data.get("activeTopicId"),
            seconds_remaining=data.get("secondsRemaining"),
            is_overtime=bool(data.get("isOvertime", False)),
            active_index=data.get("activeIndex"),
        )


@dataclass
class AgendaSnapshot:
    """
    Complete derived view published by agenda-timer.

    This is the top-level structure written to the snapshot file and
    served on /status. It represents the agenda at one clock sample.
    """
    # Version for contract compatibility
    version: str = "1.0.0"

    meeting_id: str = ""
    status: MeetingStatus = MeetingStatus.PLANNING
    sampled_at: Optional[datetime] = None
    anchor: Optional[datetime] = None
    end_time: Optional[datetime] = None

    topics: List[CalculatedTopic] = field(default_factory=list)
    overrun: Optional[OverrunReport] = None
    timer: TimerState = field(default_factory=TimerState)

    # Daemon bookkeeping
    poll_count: int = 0

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.topics if t.topic.is_completed)

    def to_dict(self) -> dict:
        data = {
            "version": self.version,
            "meeting_id": self.meeting_id,
            "status": self.status.value,
            "sampled_at": _iso(self.sampled_at),
            "anchor": _iso(self.anchor),
            "end_time": _iso(self.end_time),
            "topic_count": len(self.topics),
            "completed_count": self.completed_count,
            "poll_count": self.poll_count,
            "timer": self.timer.to_dict(),
            "topics": [t.to_dict() for t in self.topics],
        }
        if self.overrun:
            data["overrun"] = self.overrun.to_dict()
        return data

    def to_json(self) -> str:
        """Serialize to JSON for the snapshot file or /status."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "AgendaSnapshot":
        """
        Deserialize from JSON.

        Calculated topics are rebuilt from their pass-through fields; the
        overrun report is summarised (per-topic detail is not restored).
        """
        data = json.loads(json_str)

        snapshot = cls(
            version=data.get("version", "1.0.0"),
            meeting_id=data.get("meeting_id", ""),
            status=MeetingStatus.parse(data.get("status")),
            sampled_at=coerce_instant(data.get("sampled_at")),
            anchor=coerce_instant(data.get("anchor")),
            end_time=coerce_instant(data.get("end_time")),
            timer=TimerState.from_dict(data.get("timer") or {}),
            poll_count=data.get("poll_count", 0),
        )

        for item in data.get("topics", []):
            start = coerce_instant(item.get("startTime"))
            end = coerce_instant(item.get("endTime"))
            if start is None or end is None:
                continue
            snapshot.topics.append(CalculatedTopic(
                topic=Topic.from_record(item),
                start_time=start,
                end_time=end,
                start_offset_minutes=item.get("startOffsetMinutes", 0.0),
                end_offset_minutes=item.get("endOffsetMinutes", 0.0),
            ))

        if "overrun" in data:
            o = data["overrun"]
            snapshot.overrun = OverrunReport(
                scheduled_minutes=o.get("scheduled_minutes", 0.0),
                boundary_topic_id=o.get("boundary_topic_id"),
                boundary_offset=o.get("boundary_offset"),
                boundary_time=coerce_instant(o.get("boundary_time")),
            )

        return snapshot
