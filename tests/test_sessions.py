import uuid
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from errors import IdentifierGenerationError
from sessions import SessionStore, new_session_id
from tests.conftest import FakeBackend


@pytest.fixture
def store(backend: FakeBackend) -> SessionStore:
    return SessionStore(backend.start_conversation)


class TestResolve:
    def test_empty_id_creates_session(self, store, backend):
        session = store.resolve("")
        assert uuid.UUID(session.id).version == 4
        assert store.get(session.id) is session
        assert backend.started == 1

    def test_none_id_creates_session(self, store):
        session = store.resolve(None)
        assert session.id in store

    def test_known_id_returns_same_session(self, store, backend):
        first = store.resolve("")
        second = store.resolve(first.id)
        assert second is first
        assert second.conversation_handle is first.conversation_handle
        assert backend.started == 1
        assert len(store) == 1

    def test_unknown_id_gets_fresh_identifier(self, store):
        session = store.resolve("not-issued-by-us")
        assert session.id != "not-issued-by-us"
        assert "not-issued-by-us" not in store
        assert session.id in store

    def test_new_sessions_have_distinct_handles(self, store):
        a = store.resolve("")
        b = store.resolve("")
        assert a.id != b.id
        assert a.conversation_handle is not b.conversation_handle

    def test_id_generation_failure_propagates(self, backend):
        failing = MagicMock(side_effect=IdentifierGenerationError("failed to generate session ID: no entropy"))
        store = SessionStore(backend.start_conversation, id_factory=failing)
        with pytest.raises(IdentifierGenerationError):
            store.resolve("")
        assert len(store) == 0
        assert backend.started == 0


class TestNewSessionId:
    def test_returns_uuid4_string(self):
        assert uuid.UUID(new_session_id()).version == 4

    def test_randomness_failure_is_wrapped(self, monkeypatch):
        def broken():
            raise NotImplementedError("no randomness source")

        monkeypatch.setattr("sessions.uuid.uuid4", broken)
        with pytest.raises(IdentifierGenerationError, match="failed to generate session ID"):
            new_session_id()


class TestConcurrentAccess:
    def test_concurrent_new_sessions_get_distinct_ids(self, store, backend):
        with ThreadPoolExecutor(max_workers=16) as pool:
            ids = list(pool.map(lambda _: store.resolve("").id, range(500)))
        assert len(set(ids)) == 500
        assert len(store) == 500
        assert backend.started == 500

    def test_concurrent_lookups_of_same_id_keep_one_session(self, store, backend):
        existing = store.resolve("")
        with ThreadPoolExecutor(max_workers=16) as pool:
            sessions = list(pool.map(lambda _: store.resolve(existing.id), range(500)))
        assert all(s is existing for s in sessions)
        assert len(store) == 1
        assert backend.started == 1

    def test_mixed_traffic_keeps_store_consistent(self, store):
        seeded = [store.resolve("") for _ in range(10)]

        def work(i):
            if i % 3 == 0:
                return store.resolve("")
            return store.resolve(seeded[i % 10].id)

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(work, range(600)))

        created = {s.id for i, s in enumerate(results) if i % 3 == 0}
        assert len(created) == 200
        assert len(store) == 210
        for s in seeded:
            assert store.get(s.id) is s
