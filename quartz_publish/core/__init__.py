"""Core publish functionality."""

from .auth import GitHubAuth
from .client import GitHubClient, GitHubRepository
from .concurrency import EditSession, OptimisticConcurrencyWriter
from .content import LocalContentSource
from .errors import (
    ConflictError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    RemoteRepositoryError,
    ValidationError,
)
from .publish import PublishOrchestrator
from .records import JsonRecordStore
from .remote_sync import RemoteSyncService
from .service import PublishService
from .status import StatusEngine

__all__ = [
    "ConflictError",
    "EditSession",
    "ErrorKind",
    "GitHubAuth",
    "GitHubClient",
    "GitHubRepository",
    "JsonRecordStore",
    "LocalContentSource",
    "NetworkError",
    "NotFoundError",
    "OptimisticConcurrencyWriter",
    "PublishOrchestrator",
    "PublishService",
    "RateLimitedError",
    "RemoteRepositoryError",
    "RemoteSyncService",
    "StatusEngine",
    "ValidationError",
]
