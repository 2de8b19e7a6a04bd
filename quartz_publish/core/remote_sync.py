"""Time-bounded cache of the remote repository listing."""

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..models.records import RemoteFetchResult, RemoteFileInfo, RemoteSyncCache
from .interfaces import RemoteRepository

logger = logging.getLogger(__name__)

ProgressMessageCallback = Callable[[str], None]


class RemoteSyncService:
    """Fetches and caches the remote listing of the managed content root.

    The cache is never refreshed behind the caller's back: callers check
    ``is_valid`` and call ``invalidate`` after they write to the remote.
    """

    DEFAULT_VALIDITY_SECONDS = 5 * 60

    def __init__(
        self,
        repository: RemoteRepository,
        content_path: str = "content",
        extension: str = ".md",
        validity_seconds: float = DEFAULT_VALIDITY_SECONDS,
        cache_file: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize remote sync service.

        Args:
            repository: Remote repository to list
            content_path: Remote directory holding published notes
            extension: Only files with this extension are kept
            validity_seconds: How long a fetched listing stays valid
            cache_file: Optional JSON file to persist the listing in
            clock: Time source returning epoch seconds
        """
        self.repository = repository
        self.content_path = content_path.strip("/")
        self.extension = extension
        self.validity_seconds = validity_seconds
        self.cache_file = Path(cache_file) if cache_file else None
        self._clock = clock
        self._cache: RemoteSyncCache | None = None
        self._loaded = False

    @property
    def cache(self) -> RemoteSyncCache | None:
        """Get the current snapshot, loading a persisted one on first use."""
        if not self._loaded:
            self._loaded = True
            if self._cache is None:
                self._cache = self._load_cache()
        return self._cache

    def _load_cache(self) -> RemoteSyncCache | None:
        """Load a persisted snapshot if one exists."""
        if self.cache_file is None or not self.cache_file.exists():
            return None
        try:
            with open(self.cache_file) as f:
                return RemoteSyncCache.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Ignoring unreadable remote cache %s: %s", self.cache_file, e)
            return None

    def _save_cache(self) -> None:
        """Persist the current snapshot."""
        if self.cache_file is None or self._cache is None:
            return
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_file, "w") as f:
            json.dump(self._cache.to_dict(), f, indent=2)
            f.write("\n")

    def filter_files(self, tree: list[RemoteFileInfo]) -> list[RemoteFileInfo]:
        """Keep only blobs under the content root with the managed extension.

        An empty content path means notes live at the repository root.
        """
        prefix = self.content_path + "/" if self.content_path else ""
        files = []
        for entry in tree:
            if entry.kind != "blob":
                continue
            if not entry.path.startswith(prefix):
                continue
            if not entry.path.endswith(self.extension):
                continue
            files.append(entry)
        return files

    async def fetch(self, on_progress: ProgressMessageCallback | None = None) -> RemoteFetchResult:
        """Fetch the remote listing and replace the cached snapshot.

        Failures are reported in the result, never raised.

        Args:
            on_progress: Optional callback receiving progress messages

        Returns:
            RemoteFetchResult with the filtered files
        """
        try:
            if on_progress:
                on_progress("Fetching remote file list...")
            tree = await self.repository.list_tree()

            if on_progress:
                on_progress("Filtering markdown files...")
            files = self.filter_files(tree)
        except Exception as e:
            logger.warning("Remote listing failed: %s", e)
            return RemoteFetchResult(
                files=[],
                success=False,
                fetched_at=self._clock(),
                error=str(e),
            )

        fetched_at = self._clock()
        self._cache = RemoteSyncCache.create(files, fetched_at, self.validity_seconds)
        self._loaded = True
        self._save_cache()
        logger.debug("Cached %d remote files", len(files))

        return RemoteFetchResult(files=files, success=True, fetched_at=fetched_at)

    def is_valid(self, cache: RemoteSyncCache | None = None) -> bool:
        """Check whether a snapshot is younger than the validity window.

        Args:
            cache: Snapshot to check (defaults to the current one)
        """
        if cache is None:
            cache = self.cache
        if cache is None:
            return False
        return self._clock() - cache.fetched_at < self.validity_seconds

    def valid_cache(self) -> RemoteSyncCache | None:
        """Get the current snapshot only if it is still valid."""
        cache = self.cache
        if cache is not None and self.is_valid(cache):
            return cache
        return None

    def invalidate(self) -> None:
        """Drop the cached snapshot so the next check fetches again."""
        self._cache = None
        self._loaded = True
        if self.cache_file is not None and self.cache_file.exists():
            self.cache_file.unlink()
        logger.debug("Remote cache invalidated")

    async def refresh_if_stale(
        self,
        on_progress: ProgressMessageCallback | None = None,
        offline: bool = False,
    ) -> bool:
        """Make sure a valid snapshot is available.

        Fetches only when the current snapshot is missing or expired. When
        offline, nothing is fetched.

        Returns:
            True if a valid snapshot is available afterwards
        """
        if self.is_valid():
            if on_progress:
                on_progress("Using cached remote file list")
            return True

        if offline:
            if on_progress:
                on_progress("Offline, remote file list unavailable")
            return False

        result = await self.fetch(on_progress)
        if not result.success:
            if on_progress:
                on_progress("Remote sync failed")
            return False

        if on_progress:
            on_progress(f"Fetched {len(result.files)} remote files")
        return True

    def status(self) -> dict[str, Any]:
        """Get a summary of the cache state."""
        cache = self.cache
        return {
            "content_path": self.content_path,
            "validity_seconds": self.validity_seconds,
            "cached": cache is not None,
            "valid": self.is_valid(cache),
            "fetched_at": cache.fetched_at if cache else None,
            "valid_until": cache.valid_until if cache else None,
            "total_files": len(cache.files) if cache else 0,
        }
