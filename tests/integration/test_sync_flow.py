"""Integration test: full client lifecycle against a fake API (no network)."""

import asyncio
from pathlib import Path

import pytest

from src.client import RecruitClient
from src.core.config import ReconcileStrategy, SessionConfig, Settings, SyncConfig
from src.core.errors import HTTPFailure
from src.core.schemas import JobDraft, LoginCredentials, StatusValue
from src.session.cache import SessionState
from src.session.kv_store import SqliteKeyValueStore
from src.sync.entity_store import FetchState

USER = {"id": 42, "nome": "Rita Lima", "email": "rita@example.com"}
BULK = {
    "jobs": [{"id": 1, "titulo": "Backend Dev", "usuario": [42]}],
    "candidates": [{"id": 10, "nome": "Ana", "vaga": [1], "status": {"id": 0, "value": "Triagem"}}],
}
SCHEDULES = [
    {"id": 100, "inicio": "2026-04-01T14:00:00", "fim": "2026-04-01T15:00:00",
     "candidato": [10], "vaga": [1], "detalhes": "Tech interview"},
]


def _client(gateway, kv, strategy: ReconcileStrategy = ReconcileStrategy.RESYNC) -> RecruitClient:  # type: ignore[no-untyped-def]
    settings = Settings(sync=SyncConfig(reconcile_strategy=strategy))
    return RecruitClient(settings, gateway, kv)


def _route_api(gateway) -> None:  # type: ignore[no-untyped-def]
    gateway.route("POST", "/api/auth/login", body={"user": USER})
    gateway.route("GET", "/api/data/all/42", body=BULK)
    gateway.route("GET", "/api/schedules/42", body=SCHEDULES)


class TestClientLifecycle:
    async def test_login_then_start_loads_data(self, gateway, kv) -> None:  # type: ignore[no-untyped-def]
        _route_api(gateway)
        client = _client(gateway, kv)
        assert await client.start() is FetchState.IDLE
        assert gateway.count("GET", "/api/data/all/42") == 0

        assert await client.session.sign_in(LoginCredentials(email="rita@example.com", password="x"))

        # New process: same key-value store, fresh client.
        restarted = _client(gateway, kv)
        assert await restarted.start() is FetchState.LOADED
        assert restarted.session.state is SessionState.AUTHENTICATED
        state = restarted.store.state
        assert [j.id for j in state.jobs] == [1]
        assert [c.id for c in state.candidates] == [10]
        assert state.candidates[0].status.value is StatusValue.TRIAGEM
        assert state.is_loading is False
        assert state.error is None
        assert restarted.store.schedules_for_candidate(10)[0].details == "Tech interview"

    async def test_status_change_then_job_edits(self, gateway, kv) -> None:  # type: ignore[no-untyped-def]
        _route_api(gateway)
        gateway.route("PATCH", "/api/candidates/10/status")
        gateway.route("POST", "/api/jobs", status=201, body={"id": 2, "titulo": "SRE"})
        gateway.route("DELETE", "/api/jobs/1", status=204)
        client = _client(gateway, kv)
        await client.session.sign_in(LoginCredentials(email="rita@example.com", password="x"))
        await client.start()

        pending = asyncio.create_task(client.mutations.set_candidate_status(10, "Entrevista"))
        await asyncio.sleep(0)
        candidate = client.store.get_candidate(10)
        assert candidate is not None
        assert candidate.status.value is StatusValue.ENTREVISTA
        await pending

        await client.jobs.create_job(JobDraft(title="SRE"), owner_id=42)
        await client.jobs.delete_job(1)
        assert [j.id for j in client.store.jobs] == [2]

    async def test_rejected_status_resyncs(self, gateway, kv) -> None:  # type: ignore[no-untyped-def]
        _route_api(gateway)
        gateway.route("PATCH", "/api/candidates/10/status", status=500)
        client = _client(gateway, kv)
        await client.session.sign_in(LoginCredentials(email="rita@example.com", password="x"))
        await client.start()

        with pytest.raises(HTTPFailure):
            await client.mutations.set_candidate_status(10, "Entrevista")

        assert gateway.count("GET", "/api/data/all/42") == 2
        candidate = client.store.get_candidate(10)
        assert candidate is not None
        assert candidate.status.value is StatusValue.TRIAGEM

    async def test_sign_out_forgets_everything(self, gateway, kv) -> None:  # type: ignore[no-untyped-def]
        _route_api(gateway)
        client = _client(gateway, kv)
        await client.session.sign_in(LoginCredentials(email="rita@example.com", password="x"))
        await client.start()

        client.sign_out()

        assert client.store.jobs == ()
        assert client.store.state.fetch_state is FetchState.IDLE
        assert _client(gateway, kv).session.rehydrate() is SessionState.ANONYMOUS

    async def test_sign_out_during_initial_fetch(self, gateway, kv) -> None:  # type: ignore[no-untyped-def]
        _route_api(gateway)
        client = _client(gateway, kv)
        await client.session.sign_in(LoginCredentials(email="rita@example.com", password="x"))
        gate = gateway.hold("GET", "/api/data/all/42")
        starting = asyncio.create_task(client.start())
        await gateway.entered.wait()

        client.sign_out()
        assert await client.coordinator.fetch_all(42) is FetchState.LOADING
        gate.set()
        await starting

        assert gateway.count("GET", "/api/data/all/42") == 1
        assert client.session.state is SessionState.ANONYMOUS
        assert client.store.jobs == ()
        assert client.store.candidates == ()
        assert client.store.state.fetch_state is FetchState.IDLE


class TestFromSettings:
    def test_uses_sqlite_store(self, tmp_path: Path) -> None:
        settings = Settings(session=SessionConfig(store_path=str(tmp_path / "s.db")))
        client = RecruitClient.from_settings(settings)
        try:
            assert isinstance(client.kv_store, SqliteKeyValueStore)
            assert client.mutations.strategy is ReconcileStrategy.RESYNC
        finally:
            client.close()
