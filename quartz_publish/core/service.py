"""Wires the publish components together for one vault and repository."""

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path

from ..models.config import PublishConfig
from ..models.records import (
    BatchResult,
    PublishableItem,
    RemoteFetchResult,
    RemoteObject,
    SaveResult,
    StatusOverview,
    UnpublishResult,
)
from .auth import GitHubAuth
from .client import GitHubClient, GitHubRepository
from .concurrency import OptimisticConcurrencyWriter
from .content import LocalContentSource
from .interfaces import ContentSource, RecordStore, RemoteRepository
from .publish import PublishOrchestrator, PublishProgressCallback
from .records import JsonRecordStore
from .remote_sync import RemoteSyncService
from .status import StatusEngine, StatusProgressCallback

logger = logging.getLogger(__name__)


class PublishService:
    """Entry point used by the CLI.

    Builds the default collaborators from a ``PublishConfig`` (vault on disk,
    JSON records, GitHub) unless they are passed in.
    """

    def __init__(
        self,
        config: PublishConfig,
        base_dir: Path,
        repository: RemoteRepository | None = None,
        content: ContentSource | None = None,
        records: RecordStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize publish service.

        Args:
            config: Loaded configuration
            base_dir: Directory relative config paths are resolved against
            repository: Remote repository (defaults to GitHub from env/config)
            content: Content source (defaults to the configured vault)
            records: Record store (defaults to the configured JSON file)
            clock: Time source for the cache and record cleanup
        """
        self.config = config
        self.base_dir = Path(base_dir)
        settings = config.settings

        if repository is None:
            auth = GitHubAuth(repository=config.repository or None, branch=config.branch)
            repository = GitHubRepository(GitHubClient(auth))
        if content is None:
            content = LocalContentSource(
                config.resolve(self.base_dir, config.vault_dir),
                config.filter,
                extension=settings.extension,
            )
        if records is None:
            records = JsonRecordStore(config.resolve(self.base_dir, config.records_file), clock=clock)

        self.repository = repository
        self.content = content
        self.records = records

        self.remote_sync = RemoteSyncService(
            repository,
            content_path=config.content_path,
            extension=settings.extension,
            validity_seconds=settings.cache_validity_seconds,
            cache_file=config.resolve(self.base_dir, config.cache_file),
            clock=clock,
        )
        if isinstance(records, JsonRecordStore):
            records.subscribe(self.remote_sync.invalidate)

        self.status_engine = StatusEngine(
            content,
            records,
            remote_sync=self.remote_sync,
            chunk_size=settings.chunk_size,
        )
        self.orchestrator = PublishOrchestrator(
            content,
            repository,
            records,
            content_path=config.content_path,
            static_path=config.static_path,
            delay_seconds=settings.publish_delay_seconds,
            remote_sync=self.remote_sync,
        )
        self.writer = OptimisticConcurrencyWriter(
            repository,
            config.site_config_path,
            remote_sync=self.remote_sync,
        )

    @classmethod
    def from_config_file(cls, config_path: Path) -> "PublishService":
        """Create a service from a YAML config file."""
        config_path = Path(config_path)
        return cls(PublishConfig.load(config_path), config_path.parent)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def compute_overview(
        self,
        on_progress: StatusProgressCallback | None = None,
        offline: bool = False,
    ) -> StatusOverview:
        return await self.status_engine.compute_overview(on_progress, offline=offline)

    def items_for_paths(self, paths: list[str]) -> list[PublishableItem]:
        """Resolve local paths to items, using placeholders for missing files."""
        items = []
        for path in paths:
            item = self.content.get_item(path)
            items.append(item if item is not None else PublishableItem.placeholder(path))
        return items

    # -------------------------------------------------------------------------
    # Publish / unpublish
    # -------------------------------------------------------------------------

    async def publish_batch(
        self,
        items: list[PublishableItem],
        on_progress: PublishProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BatchResult:
        return await self.orchestrator.publish_batch(items, on_progress, cancel)

    async def unpublish_batch(
        self,
        items: list[PublishableItem],
        cancel: asyncio.Event | None = None,
    ) -> list[UnpublishResult]:
        return await self.orchestrator.unpublish_batch(items, cancel)

    # -------------------------------------------------------------------------
    # Shared resource (site configuration)
    # -------------------------------------------------------------------------

    async def load_shared_resource(self) -> RemoteObject:
        return await self.writer.load()

    async def save_shared_resource(
        self,
        new_value: str,
        baseline_version: str,
        description: str,
    ) -> SaveResult:
        return await self.writer.save(new_value, baseline_version, description)

    async def resolve_conflict(
        self,
        resolution: str,
        conflict: SaveResult,
        new_value: str,
        description: str,
    ) -> SaveResult:
        return await self.writer.resolve(resolution, conflict, new_value, description)

    # -------------------------------------------------------------------------
    # Remote cache
    # -------------------------------------------------------------------------

    def invalidate_remote_cache(self) -> None:
        self.remote_sync.invalidate()

    async def refresh_remote_cache(self) -> RemoteFetchResult:
        """Fetch the remote listing regardless of cache age."""
        return await self.remote_sync.fetch()

    # -------------------------------------------------------------------------
    # Record cleanup
    # -------------------------------------------------------------------------

    def clean_up_records(self, cleanup_all: bool = False) -> int:
        """Drop records whose local file is gone (at most once a day).

        Returns:
            Number of removed records (0 for stores without cleanup)
        """
        if not isinstance(self.records, JsonRecordStore):
            return 0
        return self.records.cleanup_missing(
            lambda path: self.content.get_item(path) is not None,
            cleanup_all=cleanup_all,
        )

    async def clean_up_deleted_records(self) -> int:
        """Drop records whose remote copy is no longer listed.

        Nothing is removed when the listing cannot be fetched.

        Returns:
            Number of removed records
        """
        if not isinstance(self.records, JsonRecordStore):
            return 0
        result = await self.remote_sync.fetch()
        if not result.success:
            logger.warning("Skipping record cleanup: %s", result.error)
            return 0
        return self.records.clean_up_deleted(result.files)
