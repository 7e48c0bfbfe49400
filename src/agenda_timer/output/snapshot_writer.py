"""
Snapshot Writer for agenda-timer

Writes AgendaSnapshot to a JSON file for consumption by wall displays,
presenter screens and other clients that only need the derived agenda
view.

The file is updated atomically (write to temp, rename) to prevent
partial reads.

Usage:
    writer = SnapshotWriter('/tmp/agenda_timer.json')
    writer.write(snapshot)
"""

import json
import os
import tempfile
import logging
from pathlib import Path
from typing import Optional

from ..interfaces.agenda_models import AgendaSnapshot

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """
    Writes AgendaSnapshot to a file.

    The file is JSON-formatted for easy debugging and consumption.
    Updates are atomic (write to temp file, then rename).
    """

    DEFAULT_PATH = "/tmp/agenda_timer.json"

    def __init__(self, snapshot_path: Optional[str] = None):
        """
        Initialize snapshot writer.

        Args:
            snapshot_path: Path to snapshot file (default: /tmp/agenda_timer.json)
        """
        self.snapshot_path = Path(snapshot_path or self.DEFAULT_PATH)
        self.write_count = 0

        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"SnapshotWriter initialized: {self.snapshot_path}")

    def write(self, snapshot: AgendaSnapshot) -> bool:
        """
        Write snapshot to file.

        Uses atomic write (temp file + rename) to prevent partial reads.

        Args:
            snapshot: AgendaSnapshot to write

        Returns:
            True if successful, False on error
        """
        try:
            json_data = snapshot.to_json()

            # Temp file must be in the same directory for an atomic rename
            fd, temp_path = tempfile.mkstemp(
                dir=self.snapshot_path.parent,
                prefix='.agenda_timer_',
                suffix='.tmp'
            )

            try:
                with os.fdopen(fd, 'w') as f:
                    f.write(json_data)

                os.replace(temp_path, self.snapshot_path)

                self.write_count += 1

                if self.write_count % 60 == 0:  # ~1 minute at the default cadence
                    logger.debug(
                        f"Snapshot write #{self.write_count}: "
                        f"active={snapshot.timer.active_topic_id}, "
                        f"remaining={snapshot.timer.seconds_remaining}"
                    )

                return True

            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise

        except Exception as e:
            logger.error(f"Failed to write snapshot: {e}")
            return False

    def clear(self):
        """Remove snapshot file."""
        try:
            if self.snapshot_path.exists():
                self.snapshot_path.unlink()
                logger.info(f"Cleared snapshot: {self.snapshot_path}")
        except Exception as e:
            logger.warning(f"Failed to clear snapshot: {e}")


class SnapshotReader:
    """
    Reads AgendaSnapshot from the snapshot file.

    This is the client-side reader used by displays to follow a meeting
    without running the engine themselves.

    Usage:
        reader = SnapshotReader('/tmp/agenda_timer.json')
        if reader.is_overtime():
            flash_screen()
    """

    DEFAULT_PATH = SnapshotWriter.DEFAULT_PATH

    def __init__(self, snapshot_path: Optional[str] = None):
        self.snapshot_path = Path(snapshot_path or self.DEFAULT_PATH)
        self._read_count = 0

    def read(self) -> Optional[AgendaSnapshot]:
        """
        Read current snapshot.

        Returns:
            AgendaSnapshot or None if unavailable
        """
        try:
            if not self.snapshot_path.exists():
                return None

            with open(self.snapshot_path, 'r') as f:
                json_data = f.read()

            snapshot = AgendaSnapshot.from_json(json_data)
            self._read_count += 1
            return snapshot

        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in snapshot: {e}")
            return None
        except Exception as e:
            logger.warning(f"Failed to read snapshot: {e}")
            return None

    def active_topic(self) -> Optional[str]:
        """Id of the active topic, or None when idle or unavailable."""
        snapshot = self.read()
        return snapshot.timer.active_topic_id if snapshot else None

    def is_overtime(self) -> bool:
        snapshot = self.read()
        return snapshot is not None and snapshot.timer.is_overtime

    @property
    def available(self) -> bool:
        """Check if snapshot file exists."""
        return self.snapshot_path.exists()
