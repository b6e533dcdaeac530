"""Smoke tests for key/value stores and the record repository."""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest

from study_tracker.errors import NotFound
from study_tracker.models.profile import UserProfile
from study_tracker.models.records import DEFAULT_SUBJECTS, StudyRecord, Subject, Task
from study_tracker.storage.kv_store import (
    InMemoryKVStore,
    JsonFileKVStore,
    SupabaseKVStore,
    create_store,
)
from study_tracker.storage.repository import StudyRepository, record_key, subjects_seeded_key


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryKVStore()
    return JsonFileKVStore(tmp_path / "kv_store.json")


class TestKeyValueStore:
    def test_get_missing_returns_none(self, store):
        assert store.get("nope") is None

    def test_set_then_get(self, store):
        store.set("user_profile:a", {"xp": 10})
        assert store.get("user_profile:a") == {"xp": 10}

    def test_overwrite(self, store):
        store.set("k", {"v": 1})
        store.set("k", {"v": 2})
        assert store.get("k") == {"v": 2}

    def test_delete(self, store):
        store.set("k", {"v": 1})
        store.delete("k")
        store.delete("k")
        assert store.get("k") is None

    def test_get_by_prefix(self, store):
        store.set("task:alice:1", {"n": 1})
        store.set("task:alice:2", {"n": 2})
        store.set("task:alicia:3", {"n": 3})
        store.set("goal:alice:1", {"n": 4})
        assert store.get_by_prefix("task:alice:") == [{"n": 1}, {"n": 2}]

    def test_returned_values_are_copies(self):
        store = InMemoryKVStore()
        store.set("k", {"items": []})
        store.get("k")["items"].append(1)
        assert store.get("k") == {"items": []}


class TestJsonFileKVStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "data" / "kv_store.json"
        JsonFileKVStore(path).set("k", {"v": 1})
        assert JsonFileKVStore(path).get("k") == {"v": 1}
        assert json.loads(path.read_text()) == {"k": {"v": 1}}


class TestSupabaseKVStore:
    def _store(self, handler):
        client = httpx.Client(
            base_url="https://example.supabase.co/rest/v1",
            transport=httpx.MockTransport(handler),
        )
        return SupabaseKVStore("https://example.supabase.co", "service-key", client=client)

    def test_get(self):
        def handler(request):
            assert request.url.path == "/rest/v1/kv_store"
            assert request.url.params["key"] == "eq.user_profile:a"
            return httpx.Response(200, json=[{"value": {"xp": 5}}])

        assert self._store(handler).get("user_profile:a") == {"xp": 5}

    def test_get_missing(self):
        store = self._store(lambda request: httpx.Response(200, json=[]))
        assert store.get("missing") is None

    def test_set_upserts(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["prefer"] = request.headers["Prefer"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201)

        self._store(handler).set("k", {"v": 1})
        assert seen == {
            "method": "POST",
            "prefer": "resolution=merge-duplicates",
            "body": {"key": "k", "value": {"v": 1}},
        }

    def test_get_by_prefix_filters_like_wildcards(self):
        rows = [
            {"key": "task:alice:1", "value": {"n": 1}},
            {"key": "taskxalice:2", "value": {"n": 2}},
        ]
        store = self._store(lambda request: httpx.Response(200, json=rows))
        assert store.get_by_prefix("task:alice:") == [{"n": 1}]

    def test_http_error_propagates(self):
        store = self._store(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            store.get("k")


class TestCreateStore:
    def test_memory_backend(self):
        settings = SimpleNamespace(store_backend="memory")
        assert isinstance(create_store(settings), InMemoryKVStore)

    def test_supabase_requires_credentials(self):
        settings = SimpleNamespace(store_backend="supabase", supabase_configured=False)
        with pytest.raises(ValueError):
            create_store(settings)


class TestRepository:
    @pytest.fixture
    def repo(self):
        return StudyRepository(InMemoryKVStore())

    def test_get_profile_missing(self, repo):
        with pytest.raises(NotFound):
            repo.get_profile("ghost")

    def test_load_profile_defaults(self, repo):
        profile = repo.load_profile("ghost")
        assert profile.xp == 0
        assert profile.streak == 0

    def test_profile_roundtrip_keeps_level_derived(self, repo):
        repo.save_profile("alice", UserProfile(name="Alice", xp=2500))
        stored = repo.store.get("user_profile:alice")
        assert "level" not in stored
        assert stored["xp"] == 2500
        assert repo.get_profile("alice").level == 3

    def test_study_records_newest_first(self, repo):
        t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            repo.add_study_record(
                StudyRecord(user_id="alice", subject="Math", duration=30,
                            created_at=t0 + timedelta(hours=i))
            )
        records = repo.list_study_records("alice")
        assert [r.created_at.hour for r in records] == [2, 1, 0]
        assert repo.list_study_records("bob") == []

    def test_task_of_other_user_not_found(self, repo):
        task = Task(user_id="alice", title="Read chapter 3")
        repo.save_task(task)
        assert repo.get_task("alice", task.id).title == "Read chapter 3"
        with pytest.raises(NotFound):
            repo.get_task("bob", task.id)
        with pytest.raises(NotFound):
            repo.delete_task("bob", task.id)

    def test_record_key_layout(self):
        assert record_key("goal", "alice", "g1") == "goal:alice:g1"
        assert record_key("goal", "alice") == "goal:alice:"

    def test_subjects_seeded_once(self, repo):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        subjects = repo.list_subjects("alice", now)
        assert [s.name for s in subjects] == list(DEFAULT_SUBJECTS)
        assert all(s.created_at < now for s in subjects)
        assert repo.store.get(subjects_seeded_key("alice")) is not None

        for subject in subjects:
            repo.delete_subject("alice", subject.id)
        assert repo.list_subjects("alice", now) == []

    def test_subject_of_other_user_not_found(self, repo):
        subject = Subject(user_id="alice", name="Statistics")
        repo.save_subject(subject)
        assert repo.get_subject("alice", subject.id).name == "Statistics"
        with pytest.raises(NotFound):
            repo.get_subject("bob", subject.id)
        with pytest.raises(NotFound):
            repo.delete_subject("bob", subject.id)

    def test_reset_subjects_replaces_custom_ones(self, repo):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        repo.save_subject(Subject(user_id="alice", name="Statistics", created_at=now))
        repo.reset_subjects("alice", now)
        names = [s.name for s in repo.list_subjects("alice", now)]
        assert names == list(DEFAULT_SUBJECTS)
