"""Configuration models for the publish system."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


def normalize_folder(folder: str) -> str:
    """Normalize a vault folder path for prefix matching.

    Strips surrounding whitespace and slashes and converts backslashes.
    """
    return folder.strip().replace("\\", "/").strip("/")


@dataclass
class PublishFilterSettings:
    """Rules deciding which notes are published and under which path."""

    include_folders: list[str] = field(default_factory=list)  # Empty = everything
    exclude_folders: list[str] = field(default_factory=list)
    exclude_tags: list[str] = field(default_factory=list)
    root_folder: str = ""  # Only publish below this folder, stripped from paths
    home_page: str = ""  # Note published as index.md

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PublishFilterSettings":
        """Create from dictionary."""
        return cls(
            include_folders=[normalize_folder(f) for f in data.get("include_folders") or []],
            exclude_folders=[normalize_folder(f) for f in data.get("exclude_folders") or []],
            exclude_tags=list(data.get("exclude_tags") or []),
            root_folder=normalize_folder(data.get("root_folder") or ""),
            home_page=data.get("home_page") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "include_folders": self.include_folders,
            "exclude_folders": self.exclude_folders,
            "exclude_tags": self.exclude_tags,
            "root_folder": self.root_folder,
            "home_page": self.home_page,
        }


@dataclass
class PublishSettings:
    """Tuning knobs for status computation and batch publishing."""

    cache_validity_seconds: float = 300.0
    publish_delay_seconds: float = 0.5
    chunk_size: int = 20
    extension: str = ".md"
    verbose: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PublishSettings":
        """Create from dictionary."""
        settings = cls(
            cache_validity_seconds=float(data.get("cache_validity_seconds", 300.0)),
            publish_delay_seconds=float(data.get("publish_delay_seconds", 0.5)),
            chunk_size=int(data.get("chunk_size", 20)),
            extension=data.get("extension", ".md"),
            verbose=bool(data.get("verbose", False)),
        )
        if settings.chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {settings.chunk_size}")
        if settings.publish_delay_seconds < 0:
            raise ValueError("publish_delay_seconds must not be negative")
        return settings

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "cache_validity_seconds": self.cache_validity_seconds,
            "publish_delay_seconds": self.publish_delay_seconds,
            "chunk_size": self.chunk_size,
            "extension": self.extension,
            "verbose": self.verbose,
        }


@dataclass
class PublishConfig:
    """Main configuration, stored as YAML next to the vault.

    Credentials never live here; see ``GitHubAuth``.
    """

    repository: str = ""  # owner/repo or a GitHub URL
    branch: str = "main"
    content_path: str = "content"
    static_path: str = "static"
    vault_dir: str = "."
    records_file: str = ".quartz-publish/publish-records.json"
    cache_file: str = ".quartz-publish/remote-cache.json"
    site_config_path: str = "quartz.config.ts"
    settings: PublishSettings = field(default_factory=PublishSettings)
    filter: PublishFilterSettings = field(default_factory=PublishFilterSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PublishConfig":
        """Create from dictionary."""
        return cls(
            repository=data.get("repository", ""),
            branch=data.get("branch", "main"),
            content_path=normalize_folder(data.get("content_path", "content")),
            static_path=normalize_folder(data.get("static_path", "static")),
            vault_dir=data.get("vault_dir", "."),
            records_file=data.get("records_file", ".quartz-publish/publish-records.json"),
            cache_file=data.get("cache_file", ".quartz-publish/remote-cache.json"),
            site_config_path=data.get("site_config_path", "quartz.config.ts"),
            settings=PublishSettings.from_dict(data.get("settings") or {}),
            filter=PublishFilterSettings.from_dict(data.get("filter") or {}),
        )

    @classmethod
    def load(cls, config_path: Path) -> "PublishConfig":
        """Load configuration from YAML file."""
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        data: dict[str, Any] = {
            "repository": self.repository,
            "branch": self.branch,
            "content_path": self.content_path,
            "static_path": self.static_path,
            "vault_dir": self.vault_dir,
            "records_file": self.records_file,
            "cache_file": self.cache_file,
            "site_config_path": self.site_config_path,
            "settings": self.settings.to_dict(),
            "filter": self.filter.to_dict(),
        }
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def resolve(self, base_dir: Path, relative: str) -> Path:
        """Resolve a configured path against the config directory."""
        path = Path(relative)
        if path.is_absolute():
            return path
        return base_dir / path
