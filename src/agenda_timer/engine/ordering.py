"""
Resolve an ordering of topic ids against the current topic set.

The ordering array is maintained separately from the topics and may be
stale: it can reference topics that were soft-deleted or never synced.
It is never repaired here, only filtered at read time.

Duplicate policy: an id is used at its first occurrence only.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Union

from ..interfaces.agenda_models import Topic

logger = logging.getLogger(__name__)

TopicCollection = Union[Mapping[str, Topic], Iterable[Topic]]


def index_topics(topics: TopicCollection) -> Dict[str, Topic]:
    """
    Key a topic collection by id.

    A mapping is copied as-is. For an iterable with repeated ids the
    last record wins, as with a keyed store lookup.
    """
    if isinstance(topics, Mapping):
        return dict(topics)
    return {topic.id: topic for topic in topics}


def resolve_ordered_topics(
    topics: TopicCollection,
    order: Iterable[str],
) -> List[Topic]:
    """
    Ordered, filtered topic list shared by layout and timer.

    Skips ids with no topic, soft-deleted topics, and repeats of an id
    already seen. Neither input is modified.

    Args:
        topics: Topic set, keyed by id or as an iterable
        order: Topic ids in presentation order

    Returns:
        Live topics in order
    """
    by_id = index_topics(topics)
    seen = set()
    resolved: List[Topic] = []

    for topic_id in order:
        if topic_id in seen:
            logger.debug(f"Duplicate id {topic_id!r} in ordering, skipping")
            continue
        seen.add(topic_id)

        topic = by_id.get(topic_id)
        if topic is None:
            logger.debug(f"Ordering references unknown topic {topic_id!r}")
            continue
        if topic.is_deleted:
            continue
        resolved.append(topic)

    return resolved
