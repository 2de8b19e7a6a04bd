"""Folder and tag rules deciding which notes get published."""

from typing import Any

from ..models.config import PublishFilterSettings, normalize_folder


def is_path_in_folder(path: str, folder: str) -> bool:
    """Check if a vault path lies inside a folder (or is the folder)."""
    folder = normalize_folder(folder)
    if not folder:
        return True
    path = normalize_folder(path)
    return path == folder or path.startswith(folder + "/")


def strip_root_folder(path: str, root_folder: str) -> str:
    """Remove the root folder prefix from a vault path."""
    root = normalize_folder(root_folder)
    if root and is_path_in_folder(path, root):
        return normalize_folder(path)[len(root):].lstrip("/")
    return path


def normalize_tag(tag: str) -> str:
    return tag.strip().lstrip("#").lower()


def frontmatter_tags(frontmatter: dict[str, Any]) -> list[str]:
    """Extract tags from frontmatter, accepting a list or a single string."""
    tags = frontmatter.get("tags")
    if isinstance(tags, list):
        return [normalize_tag(str(t)) for t in tags if t]
    if isinstance(tags, str) and tags.strip():
        return [normalize_tag(t) for t in tags.replace(",", " ").split()]
    return []


class PublishFilter:
    """Applies ``PublishFilterSettings`` to vault paths."""

    def __init__(self, settings: PublishFilterSettings | None = None) -> None:
        self.settings = settings or PublishFilterSettings()

    def is_home_page(self, path: str) -> bool:
        home = self.settings.home_page
        return bool(home) and normalize_folder(path) == normalize_folder(home)

    def should_publish(self, path: str, frontmatter: dict[str, Any]) -> bool:
        """Check folder and tag rules for a note.

        The home page is always published.
        """
        if self.is_home_page(path):
            return True

        include = self.settings.include_folders
        if include and not any(is_path_in_folder(path, f) for f in include):
            return False

        if any(is_path_in_folder(path, f) for f in self.settings.exclude_folders):
            return False

        excluded_tags = {normalize_tag(t) for t in self.settings.exclude_tags}
        if excluded_tags and excluded_tags.intersection(frontmatter_tags(frontmatter)):
            return False

        if self.settings.root_folder and not is_path_in_folder(path, self.settings.root_folder):
            return False

        return True

    def publish_path(self, path: str) -> str:
        """Path of a note below the remote content root."""
        if self.is_home_page(path):
            return "index.md"
        return strip_root_folder(path, self.settings.root_folder)
