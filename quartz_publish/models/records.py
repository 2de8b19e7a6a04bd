"""Publish records, remote listing snapshots and status models."""

import hashlib
from dataclasses import dataclass, field
from typing import Any


def _path_id(path: str) -> str:
    return hashlib.sha256(path.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class PublishableItem:
    """One unit of local content tracked for publication (a note)."""

    path: str  # Local path relative to the vault root
    exists: bool = True  # False for record-only placeholders

    @property
    def id(self) -> str:
        """Stable identifier derived from the local path."""
        return _path_id(self.path)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def basename(self) -> str:
        name = self.name
        if "." in name:
            return name.rsplit(".", 1)[0]
        return name

    @classmethod
    def placeholder(cls, path: str) -> "PublishableItem":
        """Create a placeholder for a record whose local file is gone."""
        return cls(path=path, exists=False)


@dataclass
class AttachmentRecord:
    """An attachment uploaded together with a note."""

    local_path: str
    remote_path: str
    content_hash: str
    size: int
    remote_sha: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "local_path": self.local_path,
            "remote_path": self.remote_path,
            "content_hash": self.content_hash,
            "size": self.size,
            "remote_sha": self.remote_sha,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttachmentRecord":
        """Create from dictionary."""
        return cls(
            local_path=data.get("local_path", ""),
            remote_path=data.get("remote_path", ""),
            content_hash=data.get("content_hash", ""),
            size=int(data.get("size", 0)),
            remote_sha=data.get("remote_sha", ""),
        )


@dataclass
class PublishRecord:
    """Persisted link between a local note and its last published remote copy."""

    id: str
    local_path: str
    remote_path: str
    content_hash: str  # SHA-256 of the bytes last written remotely
    remote_sha: str  # Remote version returned by that write
    published_at: str  # ISO timestamp of the write
    attachments: list[AttachmentRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "local_path": self.local_path,
            "remote_path": self.remote_path,
            "content_hash": self.content_hash,
            "remote_sha": self.remote_sha,
            "published_at": self.published_at,
            "attachments": [a.to_dict() for a in self.attachments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PublishRecord":
        """Create from dictionary."""
        local_path = data.get("local_path", "")
        return cls(
            id=data.get("id") or _path_id(local_path),
            local_path=local_path,
            remote_path=data.get("remote_path", ""),
            content_hash=data.get("content_hash", ""),
            remote_sha=data.get("remote_sha", ""),
            published_at=data.get("published_at", ""),
            attachments=[
                AttachmentRecord.from_dict(a) for a in data.get("attachments") or []
            ],
        )


@dataclass(frozen=True)
class RemoteFileInfo:
    """One entry of a remote tree listing."""

    path: str
    sha: str
    size: int = 0
    kind: str = "blob"  # "blob" or "tree"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"path": self.path, "sha": self.sha, "size": self.size, "kind": self.kind}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteFileInfo":
        """Create from dictionary."""
        return cls(
            path=data["path"],
            sha=data.get("sha", ""),
            size=int(data.get("size", 0)),
            kind=data.get("kind", "blob"),
        )


@dataclass(frozen=True)
class RemoteSyncCache:
    """Snapshot of the remote listing for the managed content root.

    Snapshots are replaced wholesale; use ``create`` so that
    ``valid_until == fetched_at + validity``.
    """

    files: tuple[RemoteFileInfo, ...]
    fetched_at: float  # Epoch seconds
    valid_until: float

    @classmethod
    def create(
        cls,
        files: list[RemoteFileInfo],
        fetched_at: float,
        validity_seconds: float,
    ) -> "RemoteSyncCache":
        """Build a snapshot whose expiry is derived from the fetch time."""
        return cls(
            files=tuple(files),
            fetched_at=fetched_at,
            valid_until=fetched_at + validity_seconds,
        )

    def has_path(self, path: str) -> bool:
        """Check whether the listing contains a path."""
        return any(f.path == path for f in self.files)

    def get(self, path: str) -> RemoteFileInfo | None:
        """Get the listing entry for a path."""
        for f in self.files:
            if f.path == path:
                return f
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "files": [f.to_dict() for f in self.files],
            "fetched_at": self.fetched_at,
            "valid_until": self.valid_until,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteSyncCache":
        """Create from dictionary."""
        return cls(
            files=tuple(RemoteFileInfo.from_dict(f) for f in data.get("files") or []),
            fetched_at=float(data.get("fetched_at", 0)),
            valid_until=float(data.get("valid_until", 0)),
        )


@dataclass
class RemoteFetchResult:
    """Result of fetching the remote listing."""

    files: list[RemoteFileInfo]
    success: bool
    fetched_at: float
    error: str | None = None


@dataclass(frozen=True)
class RemoteObject:
    """A remote file together with its current version."""

    path: str
    content: bytes
    version: str


class StatusKind:
    """Lifecycle states of a publishable item."""

    NEW = "new"
    MODIFIED = "modified"  # Local content differs from the last publish
    SYNCED = "synced"
    PENDING_DELETE = "pending_delete"  # Previously published, must be retracted


@dataclass(frozen=True)
class ItemStatus:
    """Computed status of one item. Never persisted."""

    kind: str
    local_hash: str | None = None

    @classmethod
    def new(cls) -> "ItemStatus":
        return cls(StatusKind.NEW)

    @classmethod
    def modified(cls, local_hash: str) -> "ItemStatus":
        return cls(StatusKind.MODIFIED, local_hash)

    @classmethod
    def synced(cls, local_hash: str) -> "ItemStatus":
        return cls(StatusKind.SYNCED, local_hash)

    @classmethod
    def pending_delete(cls) -> "ItemStatus":
        return cls(StatusKind.PENDING_DELETE)


@dataclass
class StatusEntry:
    """An item, its computed status and the record it was compared against."""

    item: PublishableItem
    status: ItemStatus
    record: PublishRecord | None = None


@dataclass
class StatusOverview:
    """Items grouped by status, in classification order."""

    new: list[StatusEntry] = field(default_factory=list)
    modified: list[StatusEntry] = field(default_factory=list)
    synced: list[StatusEntry] = field(default_factory=list)
    deleted: list[StatusEntry] = field(default_factory=list)

    def add(self, entry: StatusEntry) -> None:
        """Append an entry to the list matching its status."""
        self.bucket(entry.status.kind).append(entry)

    def bucket(self, kind: str) -> list[StatusEntry]:
        """Get the list holding entries of a status kind."""
        buckets = {
            StatusKind.NEW: self.new,
            StatusKind.MODIFIED: self.modified,
            StatusKind.SYNCED: self.synced,
            StatusKind.PENDING_DELETE: self.deleted,
        }
        if kind not in buckets:
            raise ValueError(f"Unknown status kind: {kind}")
        return buckets[kind]

    def paths(self, kind: str) -> list[str]:
        """Get the item paths of one status kind."""
        return [entry.item.path for entry in self.bucket(kind)]

    def all_entries(self) -> list[StatusEntry]:
        return self.new + self.modified + self.synced + self.deleted

    def counts(self) -> dict[str, int]:
        """Get the number of entries per status."""
        return {
            "new": len(self.new),
            "modified": len(self.modified),
            "synced": len(self.synced),
            "deleted": len(self.deleted),
        }


@dataclass
class PublishResult:
    """Result of publishing a single item."""

    success: bool
    item: PublishableItem
    remote_path: str | None = None
    error: str | None = None
    error_kind: str | None = None


@dataclass
class BatchResult:
    """Aggregated result of a publish batch."""

    total: int
    succeeded: int
    failed: int
    results: list[PublishResult] = field(default_factory=list)
    busy: bool = False  # Rejected because another batch was in flight
    aborted: bool = False  # Cancelled before every item was processed


@dataclass
class UnpublishResult:
    """Result of unpublishing a single item."""

    success: bool
    item: PublishableItem
    error: str | None = None
    error_kind: str | None = None


class ConflictResolution:
    """Caller decisions after a version conflict."""

    RELOAD = "reload"  # Drop the edit and restart from the remote content
    FORCE_OVERWRITE = "force_overwrite"  # Write against the latest remote version
    CANCEL = "cancel"  # Touch nothing

    ALL = (RELOAD, FORCE_OVERWRITE, CANCEL)


class SaveStatus:
    """Outcomes of a shared-resource save."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"
    RELOADED = "reloaded"
    CANCELLED = "cancelled"


@dataclass
class SaveResult:
    """Result of an optimistic-concurrency save."""

    status: str
    version: str | None = None  # New version after success, or reloaded version
    value: str | None = None  # Reloaded remote value
    remote_value: str | None = None  # Conflicting remote value
    remote_version: str | None = None  # Conflicting remote version
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == SaveStatus.SUCCESS

    @property
    def conflict(self) -> bool:
        return self.status == SaveStatus.CONFLICT
