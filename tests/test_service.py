"""End-to-end tests for PublishService on a temporary vault."""

import asyncio
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

from quartz_publish.core.client import GitHubRepository
from quartz_publish.core.records import JsonRecordStore
from quartz_publish.core.service import PublishService
from quartz_publish.models.config import PublishConfig, PublishSettings
from quartz_publish.models.records import ConflictResolution, StatusKind

from tests.fakes import FakeClock, FakeRemoteRepository, make_record

PUBLISHED = "---\npublish: true\n---\n"


def _service(tmpdir: str, repo: FakeRemoteRepository, clock: FakeClock | None = None) -> PublishService:
    root = Path(tmpdir)
    (root / "vault").mkdir()
    config = PublishConfig(
        repository="me/garden",
        vault_dir="vault",
        settings=PublishSettings(publish_delay_seconds=0),
    )
    return PublishService(config, root, repository=repo, clock=clock or FakeClock())


def _note(service: PublishService, path: str, text: str) -> None:
    filepath = service.base_dir / "vault" / path
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(text)


class TestPublishService:
    """Tests for the wired-up service."""

    def test_publish_cycle(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            service = _service(tmpdir, repo)
            _note(service, "notes/a.md", PUBLISHED + "A")

            overview = asyncio.run(service.compute_overview())
            assert overview.paths(StatusKind.NEW) == ["notes/a.md"]

            result = asyncio.run(service.publish_batch([e.item for e in overview.new]))
            assert result.succeeded == 1
            assert "content/notes/a.md" in repo.objects

            overview = asyncio.run(service.compute_overview())
            assert overview.paths(StatusKind.SYNCED) == ["notes/a.md"]

            _note(service, "notes/a.md", PUBLISHED + "A, edited")
            overview = asyncio.run(service.compute_overview())
            assert overview.paths(StatusKind.MODIFIED) == ["notes/a.md"]

    def test_publish_refuses_excluded_note(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            service = _service(tmpdir, repo)
            service.content.filter.settings.exclude_folders = ["private"]
            _note(service, "private/secret.md", PUBLISHED + "secret")
            _note(service, "draft.md", "---\npublish: false\n---\n")

            result = asyncio.run(service.publish_batch(service.items_for_paths(["private/secret.md", "draft.md"])))

            assert result.failed == 2
            assert repo.objects == {}
            assert service.records.paths() == []

    def test_publish_uses_frontmatter_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            service = _service(tmpdir, repo)
            _note(service, "drafts/a.md", "---\npublish: true\npath: guides/intro\n---\nA")

            result = asyncio.run(service.publish_batch(service.items_for_paths(["drafts/a.md"])))

            assert result.results[0].remote_path == "content/guides/intro.md"
            assert "content/guides/intro.md" in repo.objects

    def test_unpublish_deleted_note(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            service = _service(tmpdir, repo)
            _note(service, "a.md", PUBLISHED + "A")
            asyncio.run(service.publish_batch(service.items_for_paths(["a.md"])))

            (service.base_dir / "vault" / "a.md").unlink()
            overview = asyncio.run(service.compute_overview())
            assert overview.paths(StatusKind.PENDING_DELETE) == ["a.md"]

            results = asyncio.run(service.unpublish_batch([e.item for e in overview.deleted]))

            assert results[0].success
            assert repo.objects == {}
            assert asyncio.run(service.compute_overview()).all_entries() == []

    def test_record_write_invalidates_cache(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            service = _service(tmpdir, FakeRemoteRepository())
            asyncio.run(service.refresh_remote_cache())
            assert service.remote_sync.is_valid()

            service.records.upsert("a.md", make_record("a.md", "h"))

            assert not service.remote_sync.is_valid()

    def test_invalidate_remote_cache(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            service = _service(tmpdir, FakeRemoteRepository())
            asyncio.run(service.refresh_remote_cache())

            service.invalidate_remote_cache()

            assert service.remote_sync.cache is None

    def test_items_for_paths(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            service = _service(tmpdir, FakeRemoteRepository())
            _note(service, "a.md", "A")

            items = service.items_for_paths(["a.md", "gone.md"])

            assert [(i.path, i.exists) for i in items] == [("a.md", True), ("gone.md", False)]

    def test_shared_resource_conflict_and_force(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            repo.seed("quartz.config.ts", "v1 config")
            service = _service(tmpdir, repo)

            loaded = asyncio.run(service.load_shared_resource())
            repo.seed("quartz.config.ts", "someone else")

            conflict = asyncio.run(service.save_shared_resource("mine", loaded.version, "Update config"))
            assert conflict.conflict
            assert conflict.remote_value == "someone else"

            result = asyncio.run(
                service.resolve_conflict(ConflictResolution.FORCE_OVERWRITE, conflict, "mine", "Update config")
            )

            assert result.success
            assert result.version == "v3"

    def test_clean_up_records(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            service = _service(tmpdir, FakeRemoteRepository())
            _note(service, "kept.md", "A")
            service.records.upsert("kept.md", make_record("kept.md", "h"))
            service.records.upsert("gone.md", make_record("gone.md", "h"))

            assert service.clean_up_records() == 1
            assert service.records.paths() == ["kept.md"]

    def test_clean_up_deleted_records(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            repo.seed("content/kept.md", "A")
            service = _service(tmpdir, repo)
            service.records.upsert("kept.md", make_record("kept.md", "h"))
            service.records.upsert("gone.md", make_record("gone.md", "h"))

            assert asyncio.run(service.clean_up_deleted_records()) == 1
            assert service.records.paths() == ["kept.md"]

    def test_clean_up_deleted_records_skipped_when_offline(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = FakeRemoteRepository()
            repo.list_failure = ConnectionError("offline")
            service = _service(tmpdir, repo)
            service.records.upsert("a.md", make_record("a.md", "h"))

            assert asyncio.run(service.clean_up_deleted_records()) == 0
            assert service.records.count() == 1

    def test_from_config_file_builds_github_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "quartz-publish.yaml"
            PublishConfig(repository="me/garden").save(config_path)

            with patch.dict(os.environ, {"GITHUB_TOKEN": "ghp_test"}, clear=True), \
                    patch("quartz_publish.core.auth.load_dotenv"):
                service = PublishService.from_config_file(config_path)

            assert isinstance(service.repository, GitHubRepository)
            assert service.repository.client.auth.repo == "garden"
            assert isinstance(service.records, JsonRecordStore)
            assert service.records.records_file == Path(tmpdir) / ".quartz-publish" / "publish-records.json"
