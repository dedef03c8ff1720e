"""Normalization of decoded API bodies into typed models.

Anything that does not validate is turned into MalformedResponse here, so the
entity store only ever sees typed, well-formed collections.
"""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.core.errors import MalformedResponse
from src.core.schemas import Candidate, JobPosting, Schedule, UserProfile

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], data: Any, what: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid {what} in response: {e}"
        raise MalformedResponse(msg) from e


def _collection(payload: dict[str, Any], key: str) -> list[Any]:
    """Return ``payload[key]`` as a list; a missing or non-list value becomes []."""
    items = payload.get(key)
    if isinstance(items, list):
        return items
    logger.warning("Response field '%s' is %s, using empty collection", key, type(items).__name__)
    return []


def parse_bulk_payload(data: Any) -> tuple[list[JobPosting], list[Candidate]]:
    """Parse ``{"jobs": [...], "candidates": [...]}``."""
    if not isinstance(data, dict):
        msg = f"Expected a JSON object for bulk data, got {type(data).__name__}"
        raise MalformedResponse(msg)
    jobs = [_validate(JobPosting, j, "job") for j in _collection(data, "jobs")]
    candidates = [_validate(Candidate, c, "candidate") for c in _collection(data, "candidates")]
    return jobs, candidates


def parse_schedules(data: Any) -> list[Schedule]:
    """Parse the schedule list. A null body counts as no schedules."""
    if data is None:
        return []
    if not isinstance(data, list):
        msg = f"Expected a JSON array of schedules, got {type(data).__name__}"
        raise MalformedResponse(msg)
    return [_validate(Schedule, s, "schedule") for s in data]


def parse_job(data: Any) -> JobPosting:
    return _validate(JobPosting, data, "job")


def parse_profile(data: Any) -> UserProfile:
    return _validate(UserProfile, data, "user profile")


def parse_auth_payload(data: Any) -> UserProfile:
    """Parse ``{"user": {...}}`` returned by the login and signup endpoints."""
    if not isinstance(data, dict) or "user" not in data:
        msg = "Auth response is missing the 'user' object"
        raise MalformedResponse(msg)
    return parse_profile(data["user"])
