"""Bulk refresh of jobs, candidates and schedules.

State machine (held on the store as ``StoreState.fetch_state``)::

    IDLE ──fetch_all──▶ LOADING ──ok──▶ LOADED
                          │  ▲            │
                          │  └─fetch_all──┤
                          └──error──▶ FAILED ──fetch_all──▶ LOADING

A ``fetch_all`` issued while LOADING is dropped, not queued: the caller does
not receive the in-flight result. The LOADING check and the write that sets
it happen with no await in between, so two fetches can never interleave on
the event loop.

A store ``reset`` (sign-out) while LOADING keeps the guard set. The
in-flight fetch then writes nothing back and only releases the guard.
"""

import logging

from src.api.gateway import RemoteGateway, ensure_ok, read_json
from src.api.payloads import parse_bulk_payload, parse_schedules
from src.core.config import SyncConfig
from src.core.errors import SyncError
from src.core.schemas import Candidate, JobPosting, Schedule
from src.sync.entity_store import EntityStore, FetchState

logger = logging.getLogger(__name__)


class FetchCoordinator:
    """Deduplicated bulk fetch into an EntityStore."""

    def __init__(
        self,
        store: EntityStore,
        gateway: RemoteGateway,
        config: SyncConfig | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._config = config or SyncConfig()
        self._last_user_id: int | None = None

    @property
    def state(self) -> FetchState:
        return self._store.state.fetch_state

    @property
    def last_user_id(self) -> int | None:
        return self._last_user_id

    async def fetch_all(self, user_id: int) -> FetchState:
        """Repopulate every collection for ``user_id``.

        Returns the resulting fetch state. LOADING means the call was dropped
        because another fetch is already in flight; IDLE means the store was
        reset while this fetch was in flight and its result was discarded.
        """
        if self._store.state.is_loading:
            logger.debug("Bulk fetch already in flight, ignoring request for user %d", user_id)
            return FetchState.LOADING

        self._store.begin_fetch()
        generation = self._store.generation
        self._last_user_id = user_id

        try:
            jobs, candidates, schedules = await self._load(user_id)
            if self._store.generation != generation:
                self._discard(user_id)
                return FetchState.IDLE
            self._store.complete_fetch(jobs, candidates, schedules)
        except SyncError as e:
            if self._store.generation != generation:
                self._discard(user_id)
                return FetchState.IDLE
            logger.error("Bulk fetch for user %d failed: %s", user_id, e)
            self._store.fail_fetch(self._config.fetch_error_message)
            return FetchState.FAILED
        finally:
            # Anything else escaping (including cancellation) must not leave the guard set.
            if self._store.state.is_loading:
                if self._store.generation != generation:
                    self._discard(user_id)
                else:
                    self._store.fail_fetch(self._config.fetch_error_message)

        logger.info(
            "Loaded %d jobs, %d candidates, %d schedules for user %d",
            len(jobs), len(candidates), len(self._store.schedules), user_id,
        )
        return FetchState.LOADED

    async def refetch(self) -> FetchState:
        """Re-run the bulk fetch for the last user fetched."""
        if self._last_user_id is None:
            logger.warning("refetch requested before any bulk fetch, nothing to do")
            return self.state
        return await self.fetch_all(self._last_user_id)

    def reset(self) -> None:
        """Forget the last user and empty the store; an in-flight fetch is discarded."""
        self._last_user_id = None
        self._store.reset()

    async def _load(
        self, user_id: int,
    ) -> tuple[list[JobPosting], list[Candidate], list[Schedule] | None]:
        response = await self._gateway.get(f"/api/data/all/{user_id}")
        ensure_ok(response, "Failed to load jobs and candidates")
        jobs, candidates = parse_bulk_payload(read_json(response))

        schedules: list[Schedule] | None = None
        if self._config.include_schedules:
            response = await self._gateway.get(f"/api/schedules/{user_id}")
            ensure_ok(response, "Failed to load schedules")
            schedules = parse_schedules(read_json(response))
        return jobs, candidates, schedules

    def _discard(self, user_id: int) -> None:
        logger.info("Discarding bulk fetch for user %d, store was reset while it was in flight", user_id)
        self._store.abandon_fetch()
