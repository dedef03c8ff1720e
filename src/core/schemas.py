"""Core data models for the recruiting sync client.

The server speaks Portuguese field names (``titulo``, ``nome``,
``vaga``...). Every model accepts those as well as the English attribute
names, so a profile dumped by this client validates again unchanged.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class StatusValue(str, Enum):
    """The closed set of pipeline stages a candidate can be in."""

    TRIAGEM = "Triagem"
    ENTREVISTA = "Entrevista"
    APROVADO = "Aprovado"
    REPROVADO = "Reprovado"


class JobStatus(str, Enum):
    IN_PROGRESS = "in progress"
    FINISHED = "finished"


def _link_ids(value: Any) -> list[Any]:
    """Flatten a link field (``[{"id": 1, "value": ...}]``, ``[1]`` or ``1``) to ids."""
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [item.get("id") if isinstance(item, dict) else item for item in value]


def _first_link_id(value: Any) -> Any:
    ids = _link_ids(value)
    return ids[0] if ids else None


class CandidateStatus(BaseModel):
    """Tagged status value: a stable identifier plus the display value."""

    model_config = ConfigDict(frozen=True)

    id: int
    value: StatusValue

    @classmethod
    def of(cls, value: StatusValue | str) -> "CandidateStatus":
        """Build a fresh tagged value carrying the canonical id for ``value``."""
        status = StatusValue(value)
        return cls(id=list(StatusValue).index(status), value=status)


class JobPosting(BaseModel):
    """A job opening owned by a recruiter."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = Field(default="", validation_alias=AliasChoices("title", "titulo"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "descricao"))
    address: str = Field(default="", validation_alias=AliasChoices("address", "endereco"))
    required_skills: str = Field(
        default="", validation_alias=AliasChoices("required_skills", "requisitos_obrigatorios"),
    )
    desired_skills: str = Field(
        default="", validation_alias=AliasChoices("desired_skills", "requisitos_desejaveis"),
    )
    owner_ids: list[int] = Field(
        default_factory=list, validation_alias=AliasChoices("owner_ids", "usuario"),
    )
    candidate_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("candidate_count", "candidatos"),
    )
    approved_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("approved_count", "aprovados"),
    )
    rejected_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("rejected_count", "reprovados"),
    )
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("created_at", "criado_em", "createdAt"),
    )
    status: JobStatus = JobStatus.IN_PROGRESS

    @field_validator("title", "description", "address", "required_skills", "desired_skills",
                     mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("owner_ids", mode="before")
    @classmethod
    def flatten_owners(cls, v: Any) -> list[Any]:
        return _link_ids(v)

    @field_validator("status", mode="before")
    @classmethod
    def unwrap_status(cls, v: Any) -> Any:
        if v is None:
            return JobStatus.IN_PROGRESS
        if isinstance(v, dict):
            return v.get("value")
        return v


class JobDraft(BaseModel):
    """Editable fields of a job posting, as submitted by the job form."""

    title: str
    description: str = ""
    address: str = ""
    required_skills: str = ""
    desired_skills: str = ""

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "title must not be empty"
            raise ValueError(msg)
        return v.strip()

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the server's field names."""
        return {
            "titulo": self.title,
            "descricao": self.description,
            "endereco": self.address,
            "requisitos_obrigatorios": self.required_skills,
            "requisitos_desejaveis": self.desired_skills,
        }


class Candidate(BaseModel):
    """A candidate ingested for one or more job postings."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = Field(default="", validation_alias=AliasChoices("name", "nome"))
    score: float = 0.0
    job_ids: list[int] = Field(default_factory=list, validation_alias=AliasChoices("job_ids", "vaga"))
    status: CandidateStatus = Field(default_factory=lambda: CandidateStatus.of(StatusValue.TRIAGEM))

    @field_validator("name", mode="before")
    @classmethod
    def none_name_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("score", mode="before")
    @classmethod
    def none_score_as_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("job_ids", mode="before")
    @classmethod
    def flatten_jobs(cls, v: Any) -> list[Any]:
        return _link_ids(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        # Older payloads send a bare string, unset single-selects arrive as null.
        if v is None:
            return CandidateStatus.of(StatusValue.TRIAGEM)
        if isinstance(v, str):
            return CandidateStatus.of(v)
        if isinstance(v, dict) and v.get("id") is None and "value" in v:
            return CandidateStatus.of(v["value"])
        return v


class Schedule(BaseModel):
    """An interview slot. Read-only on the client."""

    model_config = ConfigDict(frozen=True)

    id: int
    start: datetime = Field(validation_alias=AliasChoices("start", "inicio"))
    end: datetime = Field(validation_alias=AliasChoices("end", "fim"))
    candidate_id: int | None = Field(
        default=None, validation_alias=AliasChoices("candidate_id", "candidato"),
    )
    job_id: int | None = Field(default=None, validation_alias=AliasChoices("job_id", "vaga"))
    title: str = Field(default="", validation_alias=AliasChoices("title", "titulo"))
    details: str = Field(default="", validation_alias=AliasChoices("details", "detalhes"))
    saved_to_google: bool = Field(
        default=False, validation_alias=AliasChoices("saved_to_google", "saveToGoogle"),
    )

    @field_validator("candidate_id", "job_id", mode="before")
    @classmethod
    def first_link(cls, v: Any) -> Any:
        return _first_link_id(v)

    @field_validator("title", "details", mode="before")
    @classmethod
    def none_text_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode="after")
    def end_after_start(self) -> "Schedule":
        if self.end < self.start:
            msg = "schedule end must not precede its start"
            raise ValueError(msg)
        return self


class UserProfile(BaseModel):
    """The signed-in recruiter."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = Field(default="", validation_alias=AliasChoices("name", "nome"))
    email: str = ""
    phone: str = Field(default="", validation_alias=AliasChoices("phone", "telefone"))
    company: str = Field(default="", validation_alias=AliasChoices("company", "empresa"))
    google_connected: bool = Field(
        default=False, validation_alias=AliasChoices("google_connected", "isGoogleConnected"),
    )

    @field_validator("name", "email", "phone", "company", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class LoginCredentials(BaseModel):
    email: str
    password: str


class SignUpCredentials(BaseModel):
    name: str
    email: str
    password: str
    phone: str = ""
    company: str = ""
