"""Wires gateway, store, coordinator, mutation controllers and session together.

Data flow:
  1. Session rehydrates the persisted profile
  2. FetchCoordinator fills the EntityStore for that user
  3. UI reads the store; mutations go through the controllers
"""

import logging

from src.api.gateway import RemoteGateway
from src.core.config import Settings
from src.session.cache import SessionCache
from src.session.kv_store import KeyValueStore, SqliteKeyValueStore
from src.sync.entity_store import EntityStore, FetchState
from src.sync.fetch_coordinator import FetchCoordinator
from src.sync.mutations import JobEditor, OptimisticMutationController

logger = logging.getLogger(__name__)


class RecruitClient:
    """One isolated client instance: its own store, session and gateway."""

    def __init__(self, settings: Settings, gateway: RemoteGateway, kv_store: KeyValueStore) -> None:
        self.settings = settings
        self.gateway = gateway
        self.kv_store = kv_store
        self.store = EntityStore()
        self.session = SessionCache(gateway, kv_store, settings.session.profile_key)
        self.coordinator = FetchCoordinator(self.store, gateway, settings.sync)
        self.mutations = OptimisticMutationController(
            self.store, gateway, self.coordinator, settings.sync.reconcile_strategy,
        )
        self.jobs = JobEditor(self.store, gateway)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        kv_store: KeyValueStore | None = None,
    ) -> "RecruitClient":
        gateway = RemoteGateway.from_config(settings.api)
        if kv_store is None:
            kv_store = SqliteKeyValueStore(settings.session.store_path)
        return cls(settings, gateway, kv_store)

    async def start(self) -> FetchState:
        """Rehydrate the session and, when signed in, load the user's data."""
        self.session.rehydrate()
        profile = self.session.profile
        if profile is None:
            logger.info("No persisted session, skipping initial fetch")
            return self.store.state.fetch_state
        return await self.coordinator.fetch_all(profile.id)

    def sign_out(self) -> None:
        """End the session and drop every cached collection."""
        self.session.sign_out()
        self.coordinator.reset()

    def close(self) -> None:
        self.gateway.close()
        if isinstance(self.kv_store, SqliteKeyValueStore):
            self.kv_store.close()
