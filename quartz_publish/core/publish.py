"""Batch publish and unpublish operations."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from ..models.records import (
    AttachmentRecord,
    BatchResult,
    PublishableItem,
    PublishRecord,
    PublishResult,
    RemoteObject,
    UnpublishResult,
)
from .errors import ErrorKind, NotFoundError, ValidationError, classify_error
from .hashing import compute_hash
from .interfaces import ContentSource, RecordStore, RemoteRepository
from .remote_sync import RemoteSyncService

logger = logging.getLogger(__name__)

PublishProgressCallback = Callable[[int, int, PublishableItem], None]

BUSY_MESSAGE = "Publish already in progress"

MAX_FILE_SIZE = 10 * 1024 * 1024  # GitHub contents API limit


def join_remote_path(directory: str, name: str) -> str:
    """Join a remote directory and a relative path; an empty directory is the repo root."""
    name = name.lstrip("/")
    return f"{directory}/{name}" if directory else name


class PublishOrchestrator:
    """Publishes and unpublishes items one at a time.

    Only one batch runs per orchestrator at a time; a second batch started
    while one is in flight is rejected instead of queued. Items are written
    sequentially with a fixed delay in between to stay under the remote rate
    limit, and the failure of one item never aborts the rest of the batch.
    """

    PUBLISH_DELAY_SECONDS = 0.5

    def __init__(
        self,
        content: ContentSource,
        repository: RemoteRepository,
        records: RecordStore,
        content_path: str = "content",
        static_path: str = "static",
        delay_seconds: float = PUBLISH_DELAY_SECONDS,
        remote_sync: RemoteSyncService | None = None,
        max_file_size: int = MAX_FILE_SIZE,
    ) -> None:
        """Initialize publish orchestrator.

        Args:
            content: Local content source
            repository: Remote repository to write to
            records: Publish record store
            content_path: Remote directory for notes
            static_path: Remote directory for attachments
            delay_seconds: Pause between two items of a batch
            remote_sync: Optional listing cache invalidated after writes
            max_file_size: Largest note or attachment accepted, in bytes
        """
        self.content = content
        self.repository = repository
        self.records = records
        self.content_path = content_path.strip("/")
        self.static_path = static_path.strip("/")
        self.delay_seconds = delay_seconds
        self.remote_sync = remote_sync
        self.max_file_size = max_file_size
        self._busy = False

    @property
    def is_busy(self) -> bool:
        """Whether a batch is currently in flight."""
        return self._busy

    def remote_path(self, item: PublishableItem) -> str:
        """Resolve the remote path of an item."""
        return join_remote_path(self.content_path, self.content.publish_path(item))

    def attachment_remote_path(self, local_path: str) -> str:
        """Resolve the remote path of an attachment."""
        name = local_path.rsplit("/", 1)[-1]
        return join_remote_path(self.static_path, name)

    def _invalidate_cache(self) -> None:
        if self.remote_sync is not None:
            self.remote_sync.invalidate()

    # =========================================================================
    # Publish
    # =========================================================================

    async def publish_batch(
        self,
        items: list[PublishableItem],
        on_progress: PublishProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BatchResult:
        """Publish items sequentially.

        Args:
            items: Items to publish, processed in order
            on_progress: Optional callback receiving (current, total, item)
            cancel: Optional event; once set, remaining items are skipped

        Returns:
            BatchResult with per-item results

        Raises:
            ValidationError: If ``items`` is empty
        """
        if not items:
            raise ValidationError("Nothing to publish")

        if self._busy:
            logger.warning("Rejecting publish of %d items: %s", len(items), BUSY_MESSAGE)
            return BatchResult(
                total=len(items),
                succeeded=0,
                failed=len(items),
                results=[
                    PublishResult(
                        success=False,
                        item=item,
                        error=BUSY_MESSAGE,
                        error_kind=ErrorKind.VALIDATION,
                    )
                    for item in items
                ],
                busy=True,
            )

        self._busy = True
        try:
            return await self._run_publish_batch(items, on_progress, cancel)
        finally:
            self._busy = False

    async def _run_publish_batch(
        self,
        items: list[PublishableItem],
        on_progress: PublishProgressCallback | None,
        cancel: asyncio.Event | None,
    ) -> BatchResult:
        results: list[PublishResult] = []
        aborted = False

        for index, item in enumerate(items):
            if cancel is not None and cancel.is_set():
                aborted = True
                results.append(PublishResult(
                    success=False,
                    item=item,
                    error="Cancelled",
                    error_kind=ErrorKind.ABORTED,
                ))
                continue

            if on_progress:
                on_progress(index + 1, len(items), item)

            results.append(await self.publish_item(item))

            if index < len(items) - 1:
                await asyncio.sleep(self.delay_seconds)

        succeeded = sum(1 for r in results if r.success)
        return BatchResult(
            total=len(items),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
            aborted=aborted,
        )

    async def publish_item(self, item: PublishableItem) -> PublishResult:
        """Publish a single item. Never raises.

        The existing remote version is used as write precondition so a remote
        copy changed by someone else is reported as a conflict rather than
        overwritten.
        """
        remote_path: str | None = None

        try:
            if not self.content.is_publish_eligible(item):
                raise ValidationError("Note is not eligible for publishing")

            remote_path = self.remote_path(item)
            content = await self.content.read_content(item)
            if len(content) > self.max_file_size:
                raise ValidationError(
                    f"{item.path} is {len(content)} bytes, larger than the "
                    f"{self.max_file_size} byte limit"
                )

            existing = await self._get_existing(remote_path)
            precondition = existing.version if existing else None
            verb = "Update" if precondition else "Publish"

            new_version = await self.repository.put_object(
                remote_path,
                content,
                f"{verb}: {item.basename}",
                precondition=precondition,
            )
            self._invalidate_cache()

            attachments = await self._upload_attachments(item)

            record = PublishRecord(
                id=item.id,
                local_path=item.path,
                remote_path=remote_path,
                content_hash=compute_hash(content),
                remote_sha=new_version,
                published_at=datetime.now(timezone.utc).isoformat(),
                attachments=attachments,
            )
            self.records.upsert(item.path, record)

            logger.info("Published %s -> %s", item.path, remote_path)
            return PublishResult(success=True, item=item, remote_path=remote_path)

        except Exception as e:
            logger.warning("Failed to publish %s: %s", item.path, e)
            return PublishResult(
                success=False,
                item=item,
                remote_path=remote_path,
                error=str(e) or e.__class__.__name__,
                error_kind=classify_error(e),
            )

    async def _get_existing(self, remote_path: str) -> RemoteObject | None:
        """Look up the current remote object, treating NotFound as absent."""
        try:
            return await self.repository.get_object(remote_path)
        except NotFoundError:
            return None

    async def _upload_attachments(self, item: PublishableItem) -> list[AttachmentRecord]:
        """Upload the item's attachments. Failures are logged and skipped."""
        uploaded: list[AttachmentRecord] = []

        for local_path in self.content.list_attachments(item):
            remote_path = self.attachment_remote_path(local_path)
            name = local_path.rsplit("/", 1)[-1]
            try:
                data = await self.content.read_attachment(local_path)
                if len(data) > self.max_file_size:
                    logger.warning(
                        "Skipping attachment %s: %d bytes exceeds the %d byte limit",
                        local_path, len(data), self.max_file_size,
                    )
                    continue
                existing = await self._get_existing(remote_path)
                precondition = existing.version if existing else None
                message = f"Update attachment: {name}" if precondition else f"Add attachment: {name}"

                version = await self.repository.put_object(
                    remote_path, data, message, precondition=precondition
                )
                uploaded.append(AttachmentRecord(
                    local_path=local_path,
                    remote_path=remote_path,
                    content_hash=compute_hash(data),
                    size=len(data),
                    remote_sha=version,
                ))
            except Exception as e:
                logger.error("Failed to upload attachment %s: %s", local_path, e)

        return uploaded

    # =========================================================================
    # Unpublish
    # =========================================================================

    async def unpublish_batch(
        self,
        items: list[PublishableItem],
        cancel: asyncio.Event | None = None,
    ) -> list[UnpublishResult]:
        """Unpublish items sequentially.

        Args:
            items: Items (or record placeholders) to retract, in order
            cancel: Optional event; once set, remaining items are skipped

        Returns:
            One UnpublishResult per item

        Raises:
            ValidationError: If ``items`` is empty
        """
        if not items:
            raise ValidationError("Nothing to unpublish")

        if self._busy:
            logger.warning("Rejecting unpublish of %d items: %s", len(items), BUSY_MESSAGE)
            return [
                UnpublishResult(
                    success=False,
                    item=item,
                    error=BUSY_MESSAGE,
                    error_kind=ErrorKind.VALIDATION,
                )
                for item in items
            ]

        self._busy = True
        try:
            results: list[UnpublishResult] = []
            for index, item in enumerate(items):
                if cancel is not None and cancel.is_set():
                    results.append(UnpublishResult(
                        success=False,
                        item=item,
                        error="Cancelled",
                        error_kind=ErrorKind.ABORTED,
                    ))
                    continue

                results.append(await self.unpublish_item(item))

                if index < len(items) - 1:
                    await asyncio.sleep(self.delay_seconds)
            return results
        finally:
            self._busy = False

    async def unpublish_item(self, item: PublishableItem) -> UnpublishResult:
        """Delete an item's remote copy and its record. Never raises."""
        record = self.records.get_all().get(item.path)
        if record is None:
            return UnpublishResult(
                success=False,
                item=item,
                error="No publish record found",
                error_kind=ErrorKind.VALIDATION,
            )

        try:
            try:
                await self.repository.delete_object(
                    record.remote_path,
                    record.remote_sha,
                    f"Unpublish: {item.basename}",
                )
            except NotFoundError:
                logger.info("%s already deleted from remote", record.remote_path)
            self._invalidate_cache()

            for attachment in record.attachments:
                try:
                    await self.repository.delete_object(
                        attachment.remote_path,
                        attachment.remote_sha,
                        f"Remove attachment: {attachment.local_path}",
                    )
                except Exception as e:
                    logger.warning(
                        "Failed to delete attachment %s: %s", attachment.remote_path, e
                    )

            self.records.remove(item.path)

            logger.info("Unpublished %s", item.path)
            return UnpublishResult(success=True, item=item)

        except Exception as e:
            logger.warning("Failed to unpublish %s: %s", item.path, e)
            return UnpublishResult(
                success=False,
                item=item,
                error=str(e) or e.__class__.__name__,
                error_kind=classify_error(e),
            )
