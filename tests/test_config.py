"""Tests for configuration models."""

import tempfile
from pathlib import Path

import pytest

from quartz_publish.models.config import (
    PublishConfig,
    PublishFilterSettings,
    PublishSettings,
    normalize_folder,
)


class TestPublishConfig:
    """Tests for PublishConfig."""

    def test_defaults(self) -> None:
        config = PublishConfig.from_dict({})

        assert config.branch == "main"
        assert config.content_path == "content"
        assert config.static_path == "static"
        assert config.site_config_path == "quartz.config.ts"
        assert config.settings.cache_validity_seconds == 300
        assert config.settings.publish_delay_seconds == 0.5
        assert config.settings.chunk_size == 20

    def test_save_and_load(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            config = PublishConfig(
                repository="me/garden",
                content_path="content",
                settings=PublishSettings(chunk_size=5, publish_delay_seconds=1.0),
                filter=PublishFilterSettings(exclude_folders=["private"], home_page="Home.md"),
            )
            config.save(config_path)

            loaded = PublishConfig.load(config_path)

            assert loaded.repository == "me/garden"
            assert loaded.settings.chunk_size == 5
            assert loaded.settings.publish_delay_seconds == 1.0
            assert loaded.filter.exclude_folders == ["private"]
            assert loaded.filter.home_page == "Home.md"

    def test_load_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            config_path.write_text(
                "repository: me/garden\n"
                "content_path: /content/\n"
                "filter:\n"
                "  include_folders:\n"
                "    - /Public/\n"
            )

            config = PublishConfig.load(config_path)

            assert config.content_path == "content"
            assert config.filter.include_folders == ["Public"]

    def test_empty_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            config_path.write_text("")

            assert PublishConfig.load(config_path).repository == ""

    def test_resolve(self) -> None:
        config = PublishConfig()
        base = Path("/vault")

        assert config.resolve(base, ".quartz-publish/r.json") == Path("/vault/.quartz-publish/r.json")
        assert config.resolve(base, "/tmp/r.json") == Path("/tmp/r.json")


class TestPublishSettings:
    """Tests for PublishSettings validation."""

    def test_invalid_chunk_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            PublishSettings.from_dict({"chunk_size": 0})

    def test_negative_delay(self) -> None:
        with pytest.raises(ValueError, match="publish_delay_seconds"):
            PublishSettings.from_dict({"publish_delay_seconds": -1})


def test_normalize_folder() -> None:
    assert normalize_folder(" /notes/sub/ ") == "notes/sub"
    assert normalize_folder("notes\\sub") == "notes/sub"
    assert normalize_folder("") == ""
