"""Local writes that have to be confirmed by the server.

Candidate status changes are optimistic: the store is updated first, the PATCH
follows, and a rejected PATCH triggers reconciliation before the error is
re-raised to the caller. Job postings are confirm-then-apply: the store only
changes once the server has accepted the write.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from src.api.gateway import RemoteGateway, ensure_ok, read_json
from src.api.payloads import parse_job
from src.core.config import ReconcileStrategy
from src.core.errors import SyncError
from src.core.schemas import CandidateStatus, JobDraft, JobPosting, StatusValue
from src.sync.entity_store import EntityStore
from src.sync.fetch_coordinator import FetchCoordinator

logger = logging.getLogger(__name__)


class MutationPhase(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


class MutationOutcome(BaseModel):
    """Result of a confirmed status change."""

    model_config = ConfigDict(frozen=True)

    candidate_id: int
    status: StatusValue
    phase: MutationPhase


class OptimisticMutationController:
    """Apply-then-confirm candidate status transitions.

    Usage::

        controller = OptimisticMutationController(store, gateway, coordinator)
        try:
            await controller.set_candidate_status(10, StatusValue.ENTREVISTA)
        except SyncError as e:
            notify_user(e)  # store has already been reconciled
    """

    def __init__(
        self,
        store: EntityStore,
        gateway: RemoteGateway,
        coordinator: FetchCoordinator,
        strategy: ReconcileStrategy = ReconcileStrategy.RESYNC,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._coordinator = coordinator
        self._strategy = strategy
        self._phases: dict[int, MutationPhase] = {}

    @property
    def strategy(self) -> ReconcileStrategy:
        return self._strategy

    def phase_of(self, candidate_id: int) -> MutationPhase | None:
        """Phase of the most recent status change for a candidate, if any."""
        return self._phases.get(candidate_id)

    async def set_candidate_status(
        self,
        candidate_id: int,
        new_status: StatusValue | str,
    ) -> MutationOutcome:
        """Show ``new_status`` immediately, then confirm it with the server.

        Raises:
            ValueError: ``new_status`` is not a known status (nothing is changed).
            SyncError: the server did not confirm; the store was reconciled first.
        """
        status = StatusValue(new_status)
        before = self._store.get_candidate(candidate_id)
        prior = before.status if before is not None else None

        # Pending: visible before the request leaves.
        self._store.set_candidate_status(candidate_id, status)
        self._phases[candidate_id] = MutationPhase.PENDING

        try:
            response = await self._gateway.patch(
                f"/api/candidates/{candidate_id}/status", {"status": status.value},
            )
            ensure_ok(response, "Could not update the candidate status")
            read_json(response)
        except SyncError as e:
            logger.warning(
                "Status change of candidate %d to %s failed (%s), reconciling via %s",
                candidate_id, status.value, e, self._strategy.value,
            )
            self._phases[candidate_id] = MutationPhase.FAILED
            await self._reconcile(candidate_id, status, prior)
            raise

        self._phases[candidate_id] = MutationPhase.COMMITTED
        logger.info("Candidate %d status confirmed as %s", candidate_id, status.value)
        return MutationOutcome(
            candidate_id=candidate_id, status=status, phase=MutationPhase.COMMITTED,
        )

    async def _reconcile(
        self,
        candidate_id: int,
        attempted: StatusValue,
        prior: CandidateStatus | None,
    ) -> None:
        if self._strategy is ReconcileStrategy.RESYNC:
            await self._coordinator.refetch()
            return

        current = self._store.get_candidate(candidate_id)
        if prior is None or current is None:
            return
        # A later change to the same candidate wins over our rollback.
        if current.status.value == attempted:
            self._store.set_candidate_status(candidate_id, prior)
            logger.info("Candidate %d rolled back to %s", candidate_id, prior.value.value)


class JobEditor:
    """Create, edit and delete job postings, updating the store on success."""

    def __init__(self, store: EntityStore, gateway: RemoteGateway) -> None:
        self._store = store
        self._gateway = gateway

    async def create_job(self, draft: JobDraft, owner_id: int) -> JobPosting:
        payload = {**draft.to_payload(), "usuario": [owner_id]}
        response = await self._gateway.post("/api/jobs", payload)
        ensure_ok(response, "Could not create the job posting. Please try again.")
        job = parse_job(read_json(response))
        self._store.add_job(job)
        logger.info("Created job %d '%s'", job.id, job.title)
        return job

    async def update_job(self, job_id: int, draft: JobDraft) -> JobPosting | None:
        """PATCH the job and mirror the result.

        An empty response body is accepted: the draft is merged into the cached
        job instead. Returns None when the job is not cached and the server
        sent nothing back.
        """
        response = await self._gateway.patch(f"/api/jobs/{job_id}", draft.to_payload())
        ensure_ok(response, "Could not update the job posting. Please try again.")
        data = read_json(response)

        if data is not None:
            job = parse_job(data)
        else:
            cached = self._store.get_job(job_id)
            if cached is None:
                return None
            job = cached.model_copy(update=draft.model_dump())

        self._store.update_job_in_store(job)
        logger.info("Updated job %d", job_id)
        return job

    async def delete_job(self, job_id: int) -> None:
        response = await self._gateway.delete(f"/api/jobs/{job_id}")
        ensure_ok(response, "Could not delete the job posting.")
        self._store.remove_job(job_id)
        logger.info("Deleted job %d", job_id)
