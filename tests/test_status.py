"""Tests for publish status classification."""

import asyncio

import pytest

from quartz_publish.core.errors import NetworkError
from quartz_publish.core.hashing import compute_hash
from quartz_publish.core.publish import PublishOrchestrator
from quartz_publish.core.remote_sync import RemoteSyncService
from quartz_publish.core.status import StatusEngine
from quartz_publish.models.records import PublishableItem, StatusKind

from tests.fakes import (
    FakeClock,
    FakeContentSource,
    FakeRemoteRepository,
    InMemoryRecordStore,
    make_record,
)


class TestClassification:
    """Tests for new / modified / synced classification."""

    def test_item_without_record_is_new(self) -> None:
        content = FakeContentSource({"notes/a.md": "# A"})
        engine = StatusEngine(content, InMemoryRecordStore())

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.NEW) == ["notes/a.md"]
        assert overview.new[0].status.local_hash is None
        assert overview.counts() == {"new": 1, "modified": 0, "synced": 0, "deleted": 0}

    def test_changed_content_is_modified_with_local_hash(self) -> None:
        content = FakeContentSource({"notes/b.md": "second version"})
        records = InMemoryRecordStore({
            "notes/b.md": make_record("notes/b.md", compute_hash("first version")),
        })
        engine = StatusEngine(content, records)

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.MODIFIED) == ["notes/b.md"]
        entry = overview.modified[0]
        assert entry.status.local_hash == compute_hash("second version")
        assert entry.record is records.records["notes/b.md"]

    def test_unchanged_content_is_synced(self) -> None:
        content = FakeContentSource({"notes/s.md": "same"})
        records = InMemoryRecordStore({"notes/s.md": make_record("notes/s.md", compute_hash("same"))})
        engine = StatusEngine(content, records)

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.SYNCED) == ["notes/s.md"]
        assert overview.synced[0].status.local_hash == compute_hash("same")

    def test_unpublished_flag_with_record_is_pending_delete(self) -> None:
        content = FakeContentSource()
        content.add("notes/draft.md", "text", eligible=False)
        records = InMemoryRecordStore({
            "notes/draft.md": make_record("notes/draft.md", compute_hash("text")),
        })
        engine = StatusEngine(content, records)

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.PENDING_DELETE) == ["notes/draft.md"]
        assert overview.deleted[0].item.exists

    def test_ineligible_item_without_record_is_ignored(self) -> None:
        content = FakeContentSource()
        content.add("notes/private.md", "text", eligible=False)
        engine = StatusEngine(content, InMemoryRecordStore())

        overview = asyncio.run(engine.compute_overview())

        assert overview.all_entries() == []

    def test_publish_then_recompute_is_synced(self) -> None:
        content = FakeContentSource({"notes/a.md": "# A"})
        records = InMemoryRecordStore()
        repo = FakeRemoteRepository()
        orchestrator = PublishOrchestrator(content, repo, records, delay_seconds=0)
        engine = StatusEngine(content, records)

        result = asyncio.run(orchestrator.publish_batch([PublishableItem("notes/a.md")]))
        overview = asyncio.run(engine.compute_overview())

        assert result.succeeded == 1
        assert overview.paths(StatusKind.SYNCED) == ["notes/a.md"]
        assert overview.new == []

    def test_compute_item_status(self) -> None:
        content = FakeContentSource({"notes/a.md": "new text"})
        records = InMemoryRecordStore({"notes/a.md": make_record("notes/a.md", "old-hash")})
        engine = StatusEngine(content, records)

        entry = asyncio.run(engine.compute_item_status(PublishableItem("notes/a.md")))

        assert entry.status.kind == StatusKind.MODIFIED

    def test_status_engine_does_not_write_records(self) -> None:
        content = FakeContentSource({"a.md": "a", "b.md": "b"})
        records = InMemoryRecordStore({"b.md": make_record("b.md", "stale"), "gone.md": make_record("gone.md", "x")})
        engine = StatusEngine(content, records)

        asyncio.run(engine.compute_overview())

        assert records.writes == 0


class TestOrphanedRecords:
    """Tests for records whose local file is gone."""

    def _setup(self, remote_paths: list[str]) -> tuple[StatusEngine, FakeRemoteRepository]:
        content = FakeContentSource()
        records = InMemoryRecordStore({"notes/c.md": make_record("notes/c.md", "h")})
        repo = FakeRemoteRepository()
        for path in remote_paths:
            repo.seed(path, "remote copy")
        remote_sync = RemoteSyncService(repo, clock=FakeClock())
        return StatusEngine(content, records, remote_sync=remote_sync), repo

    def test_orphan_still_on_remote_is_pending_delete(self) -> None:
        engine, _ = self._setup(["content/notes/c.md"])

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.PENDING_DELETE) == ["notes/c.md"]
        assert not overview.deleted[0].item.exists

    def test_orphan_already_gone_from_remote_is_omitted(self) -> None:
        engine, _ = self._setup(["content/notes/other.md"])

        overview = asyncio.run(engine.compute_overview())

        assert overview.all_entries() == []

    def test_orphan_without_remote_sync_is_included(self) -> None:
        records = InMemoryRecordStore({"notes/c.md": make_record("notes/c.md", "h")})
        engine = StatusEngine(FakeContentSource(), records)

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.PENDING_DELETE) == ["notes/c.md"]

    def test_orphan_included_when_remote_listing_fails(self) -> None:
        engine, repo = self._setup([])
        repo.list_failure = NetworkError("offline")

        overview = asyncio.run(engine.compute_overview())

        assert overview.paths(StatusKind.PENDING_DELETE) == ["notes/c.md"]

    def test_orphan_included_when_offline_without_cache(self) -> None:
        engine, repo = self._setup([])

        overview = asyncio.run(engine.compute_overview(offline=True))

        assert repo.list_calls == 0
        assert overview.paths(StatusKind.PENDING_DELETE) == ["notes/c.md"]

    def test_find_orphaned_records_skips_publishable_items(self) -> None:
        content = FakeContentSource({"notes/a.md": "a"})
        records = InMemoryRecordStore({
            "notes/a.md": make_record("notes/a.md", "h"),
            "notes/gone.md": make_record("notes/gone.md", "h"),
        })
        engine = StatusEngine(content, records)

        orphaned = engine.find_orphaned_records()

        assert [e.item.path for e in orphaned] == ["notes/gone.md"]


class TestChunking:
    """Tests for chunked computation."""

    def _build(self, chunk_size: int) -> StatusEngine:
        content = FakeContentSource()
        records = InMemoryRecordStore()
        for i in range(45):
            path = f"notes/{i:02d}.md"
            content.add(path, f"note {i}")
            if i % 3 == 1:
                records.records[path] = make_record(path, compute_hash(f"note {i}"))
            elif i % 3 == 2:
                records.records[path] = make_record(path, "outdated")
        records.records["notes/removed.md"] = make_record("notes/removed.md", "h")
        return StatusEngine(content, records, chunk_size=chunk_size)

    def test_chunk_size_does_not_change_result(self) -> None:
        small = asyncio.run(self._build(1).compute_overview())
        large = asyncio.run(self._build(1000).compute_overview())

        for kind in (StatusKind.NEW, StatusKind.MODIFIED, StatusKind.SYNCED, StatusKind.PENDING_DELETE):
            assert small.paths(kind) == large.paths(kind)
        assert small.counts() == {"new": 15, "modified": 15, "synced": 15, "deleted": 1}

    def test_progress_reported_per_chunk(self) -> None:
        calls: list[tuple[int, int]] = []

        asyncio.run(self._build(20).compute_overview(lambda done, total: calls.append((done, total))))

        assert calls == [(20, 45), (40, 45), (45, 45)]

    def test_invalid_chunk_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            StatusEngine(FakeContentSource(), InMemoryRecordStore(), chunk_size=0)
