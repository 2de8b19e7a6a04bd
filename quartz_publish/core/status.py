"""Publish status classification.

Each local item is compared against its publish record (and, for records whose
local file is gone, against the cached remote listing) and sorted into one of
four lifecycle states: new, modified, synced or pending delete.
"""

import asyncio
import logging
from collections.abc import Callable

from ..models.records import (
    ItemStatus,
    PublishableItem,
    PublishRecord,
    StatusEntry,
    StatusOverview,
)
from .hashing import compute_hash
from .interfaces import ContentSource, RecordStore
from .remote_sync import RemoteSyncService

logger = logging.getLogger(__name__)

StatusProgressCallback = Callable[[int, int], None]


class StatusEngine:
    """Computes status overviews. Never writes records."""

    CHUNK_SIZE = 20

    def __init__(
        self,
        content: ContentSource,
        records: RecordStore,
        remote_sync: RemoteSyncService | None = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        """Initialize status engine.

        Args:
            content: Local content source
            records: Publish record store
            remote_sync: Optional remote listing cache used for orphaned records
            chunk_size: Number of items classified between yields
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.content = content
        self.records = records
        self.remote_sync = remote_sync
        self.chunk_size = chunk_size

    async def compute_overview(
        self,
        on_progress: StatusProgressCallback | None = None,
        offline: bool = False,
    ) -> StatusOverview:
        """Compute the status of every publishable item and orphaned record.

        If a remote sync service is configured, a stale listing is refreshed
        first. A failed refresh only makes the orphan check conservative.

        Args:
            on_progress: Optional callback receiving (processed, total)
            offline: Skip the remote refresh and rely on the cached listing

        Returns:
            StatusOverview grouped by status
        """
        if self.remote_sync is not None:
            refreshed = await self.remote_sync.refresh_if_stale(
                lambda message: logger.debug("Remote sync: %s", message),
                offline=offline,
            )
            if not refreshed:
                logger.warning("Remote sync failed, continuing with local data")

        overview = StatusOverview()
        items = self.content.list_publishable_items()
        records = self.records.get_all()
        total = len(items)

        for start in range(0, total, self.chunk_size):
            chunk = items[start:start + self.chunk_size]
            entries = await asyncio.gather(
                *(self._classify(item, records.get(item.path)) for item in chunk)
            )
            for entry in entries:
                overview.add(entry)

            if on_progress:
                on_progress(min(start + len(chunk), total), total)

            # Let other tasks run between chunks
            await asyncio.sleep(0)

        listed = {item.path for item in items}
        for entry in self.find_orphaned_records(records, exclude=listed):
            overview.add(entry)

        return overview

    async def compute_item_status(self, item: PublishableItem) -> StatusEntry:
        """Compute the status of a single item."""
        record = self.records.get_all().get(item.path)
        return await self._classify(item, record)

    async def _classify(self, item: PublishableItem, record: PublishRecord | None) -> StatusEntry:
        # Publish flag removed from a published item
        if record is not None and not self.content.is_publish_eligible(item):
            return StatusEntry(item=item, status=ItemStatus.pending_delete(), record=record)

        if record is None:
            return StatusEntry(item=item, status=ItemStatus.new())

        content = await self.content.read_content(item)
        local_hash = compute_hash(content)

        if local_hash != record.content_hash:
            return StatusEntry(item=item, status=ItemStatus.modified(local_hash), record=record)

        return StatusEntry(item=item, status=ItemStatus.synced(local_hash), record=record)

    def find_orphaned_records(
        self,
        records: dict[str, PublishRecord] | None = None,
        exclude: set[str] | None = None,
    ) -> list[StatusEntry]:
        """Find records that must be retracted but have no publishable item.

        A record whose local file still exists but lost its publish flag is
        always pending delete. A record whose local file is gone is pending
        delete unless a valid remote listing shows the remote copy is already
        gone, in which case the record is stale and skipped. Without a valid
        listing every such record is reported.

        Args:
            records: Records to inspect (defaults to the whole store)
            exclude: Local paths already classified as publishable items

        Returns:
            Pending-delete entries, with placeholders for missing files
        """
        if records is None:
            records = self.records.get_all()
        if exclude is None:
            exclude = {item.path for item in self.content.list_publishable_items()}

        remote_cache = self.remote_sync.valid_cache() if self.remote_sync else None
        orphaned: list[StatusEntry] = []

        for local_path, record in records.items():
            if local_path in exclude:
                continue

            local_item = self.content.get_item(local_path)
            if local_item is not None:
                if not self.content.is_publish_eligible(local_item):
                    orphaned.append(StatusEntry(
                        item=local_item,
                        status=ItemStatus.pending_delete(),
                        record=record,
                    ))
                continue

            if remote_cache is not None and not remote_cache.has_path(record.remote_path):
                logger.debug("Skipping %s - already deleted from remote", record.remote_path)
                continue

            orphaned.append(StatusEntry(
                item=PublishableItem.placeholder(local_path),
                status=ItemStatus.pending_delete(),
                record=record,
            ))

        return orphaned
