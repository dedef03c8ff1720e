"""Tests for payload normalization at the API boundary."""

import pytest

from src.api.payloads import (
    parse_auth_payload,
    parse_bulk_payload,
    parse_job,
    parse_profile,
    parse_schedules,
)
from src.core.errors import MalformedResponse
from src.core.schemas import StatusValue


class TestParseBulkPayload:
    def test_jobs_and_candidates(self) -> None:
        jobs, candidates = parse_bulk_payload({
            "jobs": [{"id": 1, "titulo": "Dev"}],
            "candidates": [{"id": 10, "status": {"id": 0, "value": "Triagem"}}],
        })
        assert [j.id for j in jobs] == [1]
        assert candidates[0].status.value is StatusValue.TRIAGEM

    def test_missing_collection_becomes_empty(self) -> None:
        jobs, candidates = parse_bulk_payload({"jobs": [{"id": 1}]})
        assert len(jobs) == 1
        assert candidates == []

    def test_non_list_collection_becomes_empty(self) -> None:
        jobs, candidates = parse_bulk_payload({"jobs": None, "candidates": {"id": 1}})
        assert jobs == []
        assert candidates == []

    def test_not_an_object(self) -> None:
        with pytest.raises(MalformedResponse, match="Expected a JSON object"):
            parse_bulk_payload([1, 2])

    def test_invalid_entity_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="Invalid candidate"):
            parse_bulk_payload({"jobs": [], "candidates": [{"nome": "no id"}]})


class TestParseSchedules:
    def test_list(self) -> None:
        schedules = parse_schedules([
            {"id": 1, "start": "2026-04-01T09:00:00", "end": "2026-04-01T10:00:00"},
        ])
        assert schedules[0].id == 1

    def test_null_is_empty(self) -> None:
        assert parse_schedules(None) == []

    def test_object_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="Expected a JSON array"):
            parse_schedules({"schedules": []})


class TestSingleEntities:
    def test_parse_job(self) -> None:
        assert parse_job({"id": 3, "titulo": "QA"}).title == "QA"

    def test_parse_job_invalid(self) -> None:
        with pytest.raises(MalformedResponse):
            parse_job(None)

    def test_parse_profile(self) -> None:
        assert parse_profile({"id": 42, "nome": "Rita"}).name == "Rita"

    def test_auth_payload(self) -> None:
        assert parse_auth_payload({"user": {"id": 42}}).id == 42

    def test_auth_payload_without_user(self) -> None:
        with pytest.raises(MalformedResponse, match="missing the 'user'"):
            parse_auth_payload({"token": "abc"})
