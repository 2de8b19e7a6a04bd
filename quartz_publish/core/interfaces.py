"""Collaborator protocols consumed by the core services.

The core only talks to these; concrete implementations (filesystem vault,
JSON record file, GitHub) live in their own modules and can be swapped for
in-memory fakes.
"""

from typing import Protocol

from ..models.records import PublishableItem, PublishRecord, RemoteFileInfo, RemoteObject


class ContentSource(Protocol):
    """Local content store holding the notes to publish."""

    def list_publishable_items(self) -> list[PublishableItem]:
        """List every item currently eligible for publishing."""
        ...

    async def read_content(self, item: PublishableItem) -> bytes:
        """Read the current bytes of an item."""
        ...

    def is_publish_eligible(self, item: PublishableItem) -> bool:
        """Check the item's publish flag and filter rules."""
        ...

    def get_item(self, path: str) -> PublishableItem | None:
        """Look up a local item by path, eligible or not."""
        ...

    def publish_path(self, item: PublishableItem) -> str:
        """Path of the item below the remote content root."""
        ...

    def list_attachments(self, item: PublishableItem) -> list[str]:
        """Local paths of files embedded by the item."""
        ...

    async def read_attachment(self, path: str) -> bytes:
        """Read the bytes of an attachment."""
        ...


class RemoteRepository(Protocol):
    """Remote store the content is published to."""

    async def list_tree(self) -> list[RemoteFileInfo]:
        """List every entry of the remote tree."""
        ...

    async def get_object(self, path: str) -> RemoteObject | None:
        """Get an object and its version, or None when absent."""
        ...

    async def put_object(
        self,
        path: str,
        content: bytes,
        message: str,
        precondition: str | None = None,
    ) -> str:
        """Create or update an object and return its new version.

        Raises ConflictError when ``precondition`` does not match.
        """
        ...

    async def delete_object(self, path: str, version: str, message: str) -> None:
        """Delete an object whose current version is ``version``."""
        ...


class RecordStore(Protocol):
    """Persistent publish records, keyed by local path."""

    def get_all(self) -> dict[str, PublishRecord]:
        ...

    def upsert(self, local_path: str, record: PublishRecord) -> None:
        ...

    def remove(self, local_path: str) -> None:
        ...
