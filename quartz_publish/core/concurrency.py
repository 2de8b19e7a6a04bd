"""Compare-and-swap writes to a single shared remote resource.

Used for the site configuration file, which can be edited from several
places. A save only goes through when the caller's baseline version is still
the remote version; otherwise the conflicting remote content is handed back
and the caller must pick a ``ConflictResolution``.
"""

import logging

from ..models.records import (
    ConflictResolution,
    RemoteObject,
    SaveResult,
    SaveStatus,
)
from .errors import ConflictError, NotFoundError
from .interfaces import RemoteRepository
from .remote_sync import RemoteSyncService

logger = logging.getLogger(__name__)


class WriterState:
    """States of the writer's save cycle."""

    IDLE = "idle"
    FETCHING = "fetching"
    WRITING = "writing"
    DONE = "done"
    CONFLICT = "conflict"
    ERROR = "error"


def _decode(content: bytes) -> str:
    return content.decode("utf-8")


class OptimisticConcurrencyWriter:
    """Writes one remote resource with version checking."""

    def __init__(
        self,
        repository: RemoteRepository,
        path: str,
        remote_sync: RemoteSyncService | None = None,
    ) -> None:
        """Initialize writer.

        Args:
            repository: Remote repository holding the resource
            path: Remote path of the resource (e.g. quartz.config.ts)
            remote_sync: Optional listing cache invalidated after writes
        """
        self.repository = repository
        self.path = path
        self.remote_sync = remote_sync
        self.state = WriterState.IDLE

    async def load(self) -> RemoteObject:
        """Fetch the current remote content and version.

        Raises:
            NotFoundError: If the resource does not exist
        """
        remote = await self.repository.get_object(self.path)
        if remote is None:
            raise NotFoundError(f"{self.path} not found")
        return remote

    async def save(self, new_value: str, baseline_version: str, description: str) -> SaveResult:
        """Write ``new_value`` if the remote is still at ``baseline_version``.

        Never retries past a version mismatch.

        Args:
            new_value: New resource content
            baseline_version: Version the edit was based on
            description: Commit message

        Returns:
            SaveResult with status success, conflict or error
        """
        self.state = WriterState.FETCHING
        try:
            current = await self.load()
        except Exception as e:
            self.state = WriterState.ERROR
            logger.error("Could not fetch %s: %s", self.path, e)
            return SaveResult(status=SaveStatus.ERROR, error=str(e))

        if current.version != baseline_version:
            logger.info(
                "Conflict on %s: baseline %s, remote %s",
                self.path,
                baseline_version,
                current.version,
            )
            self.state = WriterState.CONFLICT
            return SaveResult(
                status=SaveStatus.CONFLICT,
                remote_value=_decode(current.content),
                remote_version=current.version,
            )

        self.state = WriterState.WRITING
        try:
            version = await self.repository.put_object(
                self.path,
                new_value.encode("utf-8"),
                description,
                precondition=baseline_version,
            )
        except ConflictError:
            # Remote moved between our fetch and our write
            return await self._conflict_from_remote()
        except Exception as e:
            self.state = WriterState.ERROR
            logger.error("Could not write %s: %s", self.path, e)
            return SaveResult(status=SaveStatus.ERROR, error=str(e))

        if self.remote_sync is not None:
            self.remote_sync.invalidate()

        self.state = WriterState.DONE
        logger.info("Saved %s at version %s", self.path, version)
        return SaveResult(status=SaveStatus.SUCCESS, version=version)

    async def _conflict_from_remote(self) -> SaveResult:
        self.state = WriterState.CONFLICT
        try:
            current = await self.load()
        except Exception as e:
            self.state = WriterState.ERROR
            return SaveResult(status=SaveStatus.ERROR, error=str(e))
        return SaveResult(
            status=SaveStatus.CONFLICT,
            remote_value=_decode(current.content),
            remote_version=current.version,
        )

    async def resolve(
        self,
        resolution: str,
        conflict: SaveResult,
        new_value: str,
        description: str,
    ) -> SaveResult:
        """Apply the caller's decision after a conflict.

        Args:
            resolution: One of ``ConflictResolution``
            conflict: The conflict result returned by ``save``
            new_value: The edit that conflicted
            description: Commit message

        Returns:
            SaveResult: ``reloaded`` with the remote content for RELOAD,
            the outcome of a new save for FORCE_OVERWRITE, ``cancelled``
            for CANCEL
        """
        if resolution not in ConflictResolution.ALL:
            raise ValueError(f"Unknown conflict resolution: {resolution}")
        if not conflict.conflict:
            raise ValueError("resolve() needs a conflict result")

        if resolution == ConflictResolution.CANCEL:
            self.state = WriterState.IDLE
            return SaveResult(status=SaveStatus.CANCELLED)

        if resolution == ConflictResolution.RELOAD:
            self.state = WriterState.FETCHING
            try:
                current = await self.load()
            except Exception as e:
                self.state = WriterState.ERROR
                return SaveResult(status=SaveStatus.ERROR, error=str(e))
            self.state = WriterState.IDLE
            return SaveResult(
                status=SaveStatus.RELOADED,
                value=_decode(current.content),
                version=current.version,
            )

        # Last writer wins against the change we were shown, not against
        # anything newer: save() checks again.
        return await self.save(new_value, conflict.remote_version or "", description)

    async def save_session(self, session: "EditSession", description: str) -> SaveResult:
        """Save an edit session and move its baseline on success."""
        result = await self.save(session.current, session.baseline_version, description)
        if result.success and result.version:
            session.mark_saved(session.current, result.version)
        return result


class EditSession:
    """Tracks one edit cycle of a shared resource.

    Holds the value as loaded, the value as edited and the version the edit
    is based on.
    """

    def __init__(self) -> None:
        self._original: str | None = None
        self._current: str | None = None
        self.baseline_version = ""

    def initialize(self, value: str, version: str) -> None:
        """Start editing from a freshly loaded value."""
        self._original = value
        self._current = value
        self.baseline_version = version

    @property
    def is_initialized(self) -> bool:
        return self._original is not None

    @property
    def original(self) -> str:
        if self._original is None:
            raise RuntimeError("EditSession is not initialized")
        return self._original

    @property
    def current(self) -> str:
        if self._current is None:
            raise RuntimeError("EditSession is not initialized")
        return self._current

    def update(self, value: str) -> None:
        """Replace the edited value."""
        if self._current is None:
            raise RuntimeError("EditSession is not initialized")
        self._current = value

    def is_dirty(self) -> bool:
        return self._current != self._original

    def reset(self) -> None:
        """Discard edits."""
        self._current = self._original

    def mark_saved(self, value: str, version: str) -> None:
        """Adopt a saved (or reloaded) value as the new baseline."""
        self._original = value
        self._current = value
        self.baseline_version = version
