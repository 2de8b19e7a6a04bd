"""On-disk publish record storage."""

import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..models.records import PublishRecord, RemoteFileInfo

logger = logging.getLogger(__name__)

RECORDS_VERSION = 1


@dataclass
class RecordsData:
    """Complete contents of the records file."""

    version: int = RECORDS_VERSION
    records: dict[str, PublishRecord] = field(default_factory=dict)
    last_cleanup: float = 0.0  # Epoch seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "records": {k: v.to_dict() for k, v in self.records.items()},
            "last_cleanup": self.last_cleanup,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordsData":
        """Create from dictionary."""
        records = {}
        for local_path, record_data in (data.get("records") or {}).items():
            records[local_path] = PublishRecord.from_dict(record_data)
        return cls(
            version=data.get("version", RECORDS_VERSION),
            records=records,
            last_cleanup=float(data.get("last_cleanup") or 0.0),
        )


class JsonRecordStore:
    """Publish records stored in a single JSON file, keyed by local path.

    Observers registered with ``subscribe`` are called after every change so
    that dependent caches (the remote listing) can be invalidated without each
    writer having to remember it.
    """

    CLEANUP_INTERVAL = 24 * 60 * 60  # Seconds between missing-file cleanups

    def __init__(self, records_file: Path, clock: Callable[[], float] = time.time) -> None:
        """Initialize record store.

        Args:
            records_file: Path to publish-records.json
            clock: Time source returning epoch seconds
        """
        self.records_file = Path(records_file)
        self._clock = clock
        self._data: RecordsData | None = None
        self._observers: list[Callable[[], None]] = []

    @property
    def data(self) -> RecordsData:
        """Get or load the records data."""
        if self._data is None:
            self._data = self._load()
        return self._data

    def _load(self) -> RecordsData:
        """Load records from disk or create empty."""
        if not self.records_file.exists():
            return RecordsData()

        try:
            with open(self.records_file) as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read %s, starting empty: %s", self.records_file, e)
            return RecordsData()

        data = RecordsData.from_dict(raw)
        if data.version != RECORDS_VERSION:
            logger.info(
                "Migrating publish records from version %s to %s",
                data.version,
                RECORDS_VERSION,
            )
            data.version = RECORDS_VERSION
            self._data = data
            self.save()
        return data

    def save(self) -> None:
        """Save records to disk."""
        self.records_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.records_file, "w") as f:
            json.dump(self.data.to_dict(), f, indent=2)
            f.write("\n")

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Register a callback run after every record change."""
        self._observers.append(callback)

    def _notify(self) -> None:
        for callback in self._observers:
            callback()

    # -------------------------------------------------------------------------
    # RecordStore protocol
    # -------------------------------------------------------------------------

    def get_all(self) -> dict[str, PublishRecord]:
        """Get a copy of all records keyed by local path."""
        return dict(self.data.records)

    def upsert(self, local_path: str, record: PublishRecord) -> None:
        """Add or replace the record of a local path."""
        self.data.records[local_path] = record
        self.save()
        self._notify()

    def remove(self, local_path: str) -> None:
        """Remove the record of a local path, if any."""
        if self.data.records.pop(local_path, None) is not None:
            self.save()
            self._notify()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, local_path: str) -> PublishRecord | None:
        return self.data.records.get(local_path)

    def has(self, local_path: str) -> bool:
        return local_path in self.data.records

    def count(self) -> int:
        return len(self.data.records)

    def paths(self) -> list[str]:
        return list(self.data.records.keys())

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------

    def clean_up_deleted(self, remote_files: Iterable[RemoteFileInfo]) -> int:
        """Drop records whose remote copy is absent from a remote listing.

        Args:
            remote_files: Remote listing to reconcile against

        Returns:
            Number of removed records
        """
        remote_paths = {f.path for f in remote_files}
        kept: dict[str, PublishRecord] = {}
        removed = 0

        for local_path, record in self.data.records.items():
            if record.remote_path in remote_paths:
                kept[local_path] = record
            else:
                logger.info("Removing stale record: %s", record.remote_path)
                removed += 1

        if removed:
            self.data.records = kept
            self.save()
            self._notify()

        return removed

    def cleanup_missing(
        self,
        exists: Callable[[str], bool],
        cleanup_all: bool = False,
    ) -> int:
        """Drop records whose local file no longer exists.

        Runs at most once per ``CLEANUP_INTERVAL`` unless ``cleanup_all`` is
        set, in which case every record is removed.

        Args:
            exists: Callback telling whether a local path still exists
            cleanup_all: Remove all records regardless of the interval

        Returns:
            Number of removed records
        """
        now = self._clock()
        if not cleanup_all and now - self.data.last_cleanup < self.CLEANUP_INTERVAL:
            return 0

        if cleanup_all:
            to_remove = self.paths()
        else:
            to_remove = [p for p in self.paths() if not exists(p)]

        for local_path in to_remove:
            del self.data.records[local_path]

        self.data.last_cleanup = now
        self.save()
        if to_remove:
            self._notify()
        return len(to_remove)

    def migrate_from(self, records: dict[str, PublishRecord]) -> None:
        """Import records from an older storage location."""
        if not records:
            return
        self.data.records = dict(records)
        self.save()
        self._notify()
