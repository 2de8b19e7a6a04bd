"""Data models for the publish system."""

from .config import (
    PublishConfig,
    PublishFilterSettings,
    PublishSettings,
    normalize_folder,
)
from .records import (
    AttachmentRecord,
    BatchResult,
    ConflictResolution,
    ItemStatus,
    PublishableItem,
    PublishRecord,
    PublishResult,
    RemoteFetchResult,
    RemoteFileInfo,
    RemoteObject,
    RemoteSyncCache,
    SaveResult,
    SaveStatus,
    StatusEntry,
    StatusKind,
    StatusOverview,
    UnpublishResult,
)

__all__ = [
    "AttachmentRecord",
    "BatchResult",
    "ConflictResolution",
    "ItemStatus",
    "PublishConfig",
    "PublishFilterSettings",
    "PublishRecord",
    "PublishResult",
    "PublishSettings",
    "PublishableItem",
    "RemoteFetchResult",
    "RemoteFileInfo",
    "RemoteObject",
    "RemoteSyncCache",
    "SaveResult",
    "SaveStatus",
    "StatusEntry",
    "StatusKind",
    "StatusOverview",
    "UnpublishResult",
    "normalize_folder",
]
