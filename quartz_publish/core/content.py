"""Filesystem content source: markdown notes in a vault directory."""

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from ..models.config import PublishFilterSettings
from ..models.records import PublishableItem
from .publish_filter import PublishFilter

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
WIKI_EMBED_PATTERN = re.compile(r"!\[\[([^\]|#]+)(?:[|#][^\]]*)?\]\]")
MARKDOWN_EMBED_PATTERN = re.compile(r"!\[[^\]]*\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")


def parse_frontmatter(text: str) -> dict[str, Any]:
    """Parse the YAML frontmatter block at the top of a note.

    Returns an empty dict when there is no block or it is not a mapping.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return {}
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.warning("Invalid frontmatter: %s", e)
        return {}
    return data if isinstance(data, dict) else {}


class LocalContentSource:
    """Notes under ``vault_dir`` whose frontmatter says ``publish: true``."""

    def __init__(
        self,
        vault_dir: Path,
        filter_settings: PublishFilterSettings | None = None,
        extension: str = ".md",
    ) -> None:
        """Initialize content source.

        Args:
            vault_dir: Root directory of the vault
            filter_settings: Folder and tag rules
            extension: Note file extension
        """
        self.vault_dir = Path(vault_dir)
        self.filter = PublishFilter(filter_settings)
        self.extension = extension

    def _full_path(self, path: str) -> Path:
        return self.vault_dir / path

    def _relative(self, filepath: Path) -> str:
        return filepath.relative_to(self.vault_dir).as_posix()

    def _is_hidden(self, filepath: Path) -> bool:
        return any(part.startswith(".") for part in filepath.relative_to(self.vault_dir).parts)

    def _frontmatter(self, path: str) -> dict[str, Any]:
        filepath = self._full_path(path)
        try:
            text = filepath.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", filepath, e)
            return {}
        return parse_frontmatter(text)

    def iter_notes(self) -> list[PublishableItem]:
        """List every note in the vault, eligible or not, sorted by path."""
        if not self.vault_dir.exists():
            return []
        notes = [
            PublishableItem(path=self._relative(p))
            for p in self.vault_dir.rglob(f"*{self.extension}")
            if p.is_file() and not self._is_hidden(p)
        ]
        return sorted(notes, key=lambda item: item.path)

    # -------------------------------------------------------------------------
    # ContentSource protocol
    # -------------------------------------------------------------------------

    def list_publishable_items(self) -> list[PublishableItem]:
        return [item for item in self.iter_notes() if self.is_publish_eligible(item)]

    async def read_content(self, item: PublishableItem) -> bytes:
        return await asyncio.to_thread(self._full_path(item.path).read_bytes)

    def is_publish_eligible(self, item: PublishableItem) -> bool:
        if not self._full_path(item.path).is_file():
            return False
        frontmatter = self._frontmatter(item.path)
        if frontmatter.get("publish") is not True:
            return False
        return self.filter.should_publish(item.path, frontmatter)

    def get_item(self, path: str) -> PublishableItem | None:
        if self._full_path(path).is_file():
            return PublishableItem(path=path)
        return None

    def publish_path(self, item: PublishableItem) -> str:
        """Path below the content root: home page, then frontmatter ``path``, then vault path."""
        if not self.filter.is_home_page(item.path):
            custom = self._frontmatter(item.path).get("path")
            if isinstance(custom, str) and custom.strip().strip("/"):
                custom = custom.strip().strip("/")
                return custom if custom.endswith(self.extension) else custom + self.extension
        return self.filter.publish_path(item.path)

    def list_attachments(self, item: PublishableItem) -> list[str]:
        """Find embedded files that exist in the vault.

        Wiki embeds (``![[image.png]]``) are looked up by name anywhere in the
        vault; markdown embeds (``![alt](img/a.png)``) relative to the note.
        Embedded notes and remote URLs are ignored.
        """
        filepath = self._full_path(item.path)
        try:
            text = filepath.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return []

        found: list[str] = []

        for target in WIKI_EMBED_PATTERN.findall(text):
            resolved = self._find_by_name(target.strip())
            if resolved and resolved not in found:
                found.append(resolved)

        for target in MARKDOWN_EMBED_PATTERN.findall(text):
            if "://" in target:
                continue
            candidate = (filepath.parent / target).resolve()
            try:
                relative = self._relative_resolved(candidate)
            except ValueError:
                continue
            if candidate.is_file() and not relative.endswith(self.extension) and relative not in found:
                found.append(relative)

        return found

    def _relative_resolved(self, candidate: Path) -> str:
        return candidate.relative_to(self.vault_dir.resolve()).as_posix()

    def _find_by_name(self, target: str) -> str | None:
        direct = self._full_path(target)
        if direct.is_file():
            path = self._relative(direct)
        else:
            name = target.rsplit("/", 1)[-1]
            matches = sorted(
                p for p in self.vault_dir.rglob(name) if p.is_file() and not self._is_hidden(p)
            )
            if not matches:
                return None
            path = self._relative(matches[0])
        if path.endswith(self.extension):
            return None
        return path

    async def read_attachment(self, path: str) -> bytes:
        return await asyncio.to_thread(self._full_path(path).read_bytes)
