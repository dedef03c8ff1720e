"""In-memory mirror of the server-owned collections.

StoreState is immutable: every mutator builds a new state with new tuples, so
observers can detect changes by identity. All mutators are synchronous and
cannot fail.
"""

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict

from src.core.schemas import Candidate, CandidateStatus, JobPosting, Schedule, StatusValue

logger = logging.getLogger(__name__)

E = TypeVar("E", Candidate, JobPosting, Schedule)

Listener = Callable[["StoreState"], None]

_CANDIDATE_SORT_KEYS: dict[str, Callable[[Candidate], Any]] = {
    "score": lambda c: c.score,
    "name": lambda c: c.name.casefold(),
}


class FetchState(str, Enum):
    """Bulk fetch lifecycle."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class StoreState(BaseModel):
    """Snapshot of everything the UI renders from."""

    model_config = ConfigDict(frozen=True)

    jobs: tuple[JobPosting, ...] = ()
    candidates: tuple[Candidate, ...] = ()
    schedules: tuple[Schedule, ...] = ()
    fetch_state: FetchState = FetchState.IDLE
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.fetch_state is FetchState.LOADING


def _unique_by_id(items: Iterable[E], kind: str) -> tuple[E, ...]:
    seen: set[int] = set()
    result: list[E] = []
    for item in items:
        if item.id in seen:
            logger.warning("Dropping duplicate %s id=%d from server data", kind, item.id)
            continue
        seen.add(item.id)
        result.append(item)
    return tuple(result)


class EntityStore:
    """Owns the current StoreState and the primitives that replace it.

    Usage::

        store = EntityStore()
        unsubscribe = store.subscribe(lambda state: render(state))
        store.add_job(job)
    """

    def __init__(self) -> None:
        self._state = StoreState()
        self._listeners: list[Listener] = []
        self._generation = 0

    # -- reads -------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def generation(self) -> int:
        """Bumped by every ``reset``; a fetch started in an older generation is stale."""
        return self._generation

    @property
    def jobs(self) -> tuple[JobPosting, ...]:
        return self._state.jobs

    @property
    def candidates(self) -> tuple[Candidate, ...]:
        return self._state.candidates

    @property
    def schedules(self) -> tuple[Schedule, ...]:
        return self._state.schedules

    def get_job(self, job_id: int) -> JobPosting | None:
        return next((j for j in self._state.jobs if j.id == job_id), None)

    def get_candidate(self, candidate_id: int) -> Candidate | None:
        return next((c for c in self._state.candidates if c.id == candidate_id), None)

    def candidates_for_job(
        self,
        job_id: int,
        sort_by: str = "score",
        descending: bool = True,
    ) -> list[Candidate]:
        """Candidates linked to ``job_id``, sorted by score or name."""
        key = _CANDIDATE_SORT_KEYS.get(sort_by)
        if key is None:
            valid = ", ".join(sorted(_CANDIDATE_SORT_KEYS))
            msg = f"Cannot sort candidates by '{sort_by}'. Available: {valid}"
            raise ValueError(msg)
        linked = [c for c in self._state.candidates if job_id in c.job_ids]
        return sorted(linked, key=key, reverse=descending)

    def schedules_for_candidate(self, candidate_id: int) -> list[Schedule]:
        return sorted(
            (s for s in self._state.schedules if s.candidate_id == candidate_id),
            key=lambda s: s.start,
        )

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: object) -> None:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Store listener %r raised, continuing", listener)

    # -- entity mutators ---------------------------------------------------

    def add_job(self, job: JobPosting) -> None:
        """Prepend ``job`` (newest first). An existing entry with the same id is replaced."""
        rest = tuple(j for j in self._state.jobs if j.id != job.id)
        self._set(jobs=(job, *rest))

    def update_job_in_store(self, job: JobPosting) -> None:
        if self.get_job(job.id) is None:
            logger.debug("update_job_in_store: job %d not in store", job.id)
            return
        self._set(jobs=tuple(job if j.id == job.id else j for j in self._state.jobs))

    def remove_job(self, job_id: int) -> None:
        if self.get_job(job_id) is None:
            logger.debug("remove_job: job %d not in store", job_id)
            return
        self._set(jobs=tuple(j for j in self._state.jobs if j.id != job_id))

    def set_candidate_status(
        self,
        candidate_id: int,
        status: CandidateStatus | StatusValue | str,
    ) -> None:
        """Replace a candidate's status.

        A bare value gets a freshly built tagged value; a ``CandidateStatus`` is
        stored as given, server id included.
        """
        if self.get_candidate(candidate_id) is None:
            logger.debug("set_candidate_status: candidate %d not in store", candidate_id)
            return
        tagged = status if isinstance(status, CandidateStatus) else CandidateStatus.of(status)
        self._set(candidates=tuple(
            c.model_copy(update={"status": tagged}) if c.id == candidate_id else c
            for c in self._state.candidates
        ))

    # -- fetch lifecycle ---------------------------------------------------

    def begin_fetch(self) -> None:
        self._set(fetch_state=FetchState.LOADING, error=None)

    def complete_fetch(
        self,
        jobs: Iterable[JobPosting],
        candidates: Iterable[Candidate],
        schedules: Iterable[Schedule] | None = None,
    ) -> None:
        """Replace the collections with fresh server data.

        ``schedules=None`` keeps the current schedules (jobs/candidates-only fetch).
        """
        changes: dict[str, object] = {
            "jobs": _unique_by_id(jobs, "job"),
            "candidates": _unique_by_id(candidates, "candidate"),
            "fetch_state": FetchState.LOADED,
            "error": None,
        }
        if schedules is not None:
            changes["schedules"] = _unique_by_id(schedules, "schedule")
        self._set(**changes)

    def fail_fetch(self, message: str) -> None:
        """Record a failed fetch; collections are emptied, never left partial."""
        self._set(
            jobs=(),
            candidates=(),
            schedules=(),
            fetch_state=FetchState.FAILED,
            error=message,
        )

    def abandon_fetch(self) -> None:
        """Release the guard of a stale fetch without touching the collections."""
        if self._state.is_loading:
            self._set(fetch_state=FetchState.IDLE, error=None)

    def reset(self) -> None:
        """Drop every collection and start a new generation.

        A fetch still in flight keeps the LOADING guard until it settles, so no
        second bulk read can start; its result is then discarded.
        """
        self._generation += 1
        self._set(
            jobs=(),
            candidates=(),
            schedules=(),
            fetch_state=FetchState.LOADING if self._state.is_loading else FetchState.IDLE,
            error=None,
        )
