"""Tests for the command line entry point."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

from quartz_publish.core.records import JsonRecordStore
from quartz_publish.main import main
from quartz_publish.models.config import PublishConfig

from tests.fakes import make_record


def _run(*argv: str) -> int:
    env = {"GITHUB_TOKEN": "ghp_test"}
    with patch.dict(os.environ, env, clear=True), \
            patch("quartz_publish.core.auth.load_dotenv"), \
            patch("sys.argv", ["quartz-publish", *argv]):
        return main()


class TestMain:
    """Tests for CLI dispatch that stay offline."""

    def test_no_command_prints_help(self) -> None:
        assert _run() == 1

    def test_missing_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert _run("--config", str(Path(tmpdir) / "missing.yaml"), "status") == 1

    def test_status_offline(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            PublishConfig(repository="me/garden").save(config_path)
            (Path(tmpdir) / "a.md").write_text("---\npublish: true\n---\nA")

            assert _run("--config", str(config_path), "status", "--offline") == 0

    def test_cache_invalidate(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            PublishConfig(repository="me/garden").save(config_path)
            cache_file = Path(tmpdir) / ".quartz-publish" / "remote-cache.json"
            cache_file.parent.mkdir()
            cache_file.write_text('{"files": [], "fetched_at": 0, "valid_until": 300}')

            assert _run("--config", str(config_path), "cache", "invalidate") == 0
            assert not cache_file.exists()

    def test_publish_requires_paths(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            PublishConfig(repository="me/garden").save(config_path)

            assert _run("--config", str(config_path), "publish") == 1

    def test_records_cleanup(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            PublishConfig(repository="me/garden").save(config_path)

            assert _run("--config", str(config_path), "records", "cleanup") == 0

    def test_records_cleanup_all_asks_first(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            PublishConfig(repository="me/garden").save(config_path)
            records_file = Path(tmpdir) / ".quartz-publish" / "publish-records.json"
            records_file.parent.mkdir()
            store = JsonRecordStore(records_file)
            store.upsert("a.md", make_record("a.md", "h"))

            with patch("quartz_publish.main.Confirm.ask", return_value=False) as ask:
                assert _run("--config", str(config_path), "records", "cleanup", "--all") == 1
            ask.assert_called_once()
            assert JsonRecordStore(records_file).paths() == ["a.md"]

            assert _run("--config", str(config_path), "records", "cleanup", "--all", "--yes") == 0
            assert JsonRecordStore(records_file).paths() == []
