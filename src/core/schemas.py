"""Core data models for the job hunter engine."""

from datetime import datetime
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

JobSourceName = Literal["linkedin", "indeed", "stepstone", "energy_jobline", "datacareer"]
ApplicationType = Literal["manual", "automatic"]
ApplicationStatus = Literal["pending", "submitted", "viewed", "interview", "rejected", "accepted"]

APPLICATION_STATUSES: tuple[str, ...] = (
    "pending", "submitted", "viewed", "interview", "rejected", "accepted",
)


class JobPosting(BaseModel):
    """A job listing aggregated from one of the supported boards.

    Frozen: once scored only ``is_active`` changes, and that goes through
    the store (``db.deactivate_job``). Text fields are optional so partially
    filled postings can still be scored and matched.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    external_id: str | None = None
    source: JobSourceName = "linkedin"
    title: str | None = None
    company: str | None = None
    location: str | None = None
    description: str | None = None
    requirements: str | None = None
    salary: str | None = None
    job_type: str | None = None
    url: str | None = None
    posted_at: datetime | None = None
    is_active: bool = True
    keywords: list[str] | None = None

    @field_validator("posted_at")
    @classmethod
    def naive_local_time(cls, v: datetime | None) -> datetime | None:
        # stored and compared as naive local time
        if v is None or v.tzinfo is None:
            return v
        return v.astimezone().replace(tzinfo=None)


class RelevanceResult(BaseModel):
    """Output of the relevance scorer."""

    score: int = Field(default=0, ge=0, le=100)
    matched_keywords: list[str] = Field(default_factory=list)


class JobScore(BaseModel):
    """Latest relevance score for a (job, user) pair."""

    job_id: int
    user_id: int
    relevance_score: float = Field(default=0.0, ge=0.0, le=100.0)
    matched_keywords: list[str] = Field(default_factory=list)
    calculated_at: datetime = Field(default_factory=datetime.now)


class ScoredJob(BaseModel):
    """A job joined with the user's score, as returned by the store."""

    model_config = ConfigDict(frozen=True)

    job: JobPosting
    score: float | None = None
    matched_keywords: list[str] = Field(default_factory=list)


class ApplicationPattern(BaseModel):
    """Learned cluster of a user's manual-application preferences."""

    id: int | None = None
    user_id: int
    pattern_type: str = "learned"
    keywords: list[str] = Field(default_factory=list)
    companies: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    min_relevance_score: int | None = None
    application_count: int = Field(default=0, ge=0)
    success_rate: float = 0.0
    is_active: bool = True

    @field_validator("keywords", "companies", "locations", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class Application(BaseModel):
    """A manual or automatic application to a job."""

    id: int | None = None
    user_id: int
    job_id: int
    application_type: ApplicationType
    status: ApplicationStatus = "pending"
    applied_at: datetime = Field(default_factory=datetime.now)
    response_at: datetime | None = None
    notes: str | None = None
    cover_letter: str | None = None


class UserProfile(BaseModel):
    """CV data and job preferences for a single user."""

    user_id: int
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    cv_summary: str | None = None
    skills: list[str] = Field(default_factory=list)
    preferred_titles: list[str] = Field(default_factory=list)
    preferred_locations: list[str] = Field(default_factory=list)
    experience_years: int | None = None
    education: str | None = None
    notification_email: str | None = None
    auto_apply_enabled: bool = False
    relevance_threshold: int | None = Field(default=50, ge=0, le=100)

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> "UserProfile":
        """Load a profile from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Profile file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        raw.update(overrides)
        return cls.model_validate(raw)


class PatternMatch(BaseModel):
    """Output of the pattern matcher."""

    matches: bool = False
    matched_pattern: ApplicationPattern | None = None
    confidence: int = Field(default=0, ge=0, le=100)


class AutoApplyResult(BaseModel):
    """Summary of one auto-apply run."""

    applied: int = 0
    skipped: int = 0


class AutoApplyCandidate(BaseModel):
    """A job the matcher accepts, with the projected auto-apply outcome."""

    job: JobPosting
    score: float | None = None
    matched_keywords: list[str] = Field(default_factory=list)
    auto_apply_confidence: int
    would_auto_apply: bool


class RefreshResult(BaseModel):
    """Summary of a job refresh run."""

    jobs_found: int = 0
    new_jobs: int = 0
    started_at: datetime
    finished_at: datetime
    next_refresh_at: datetime | None = None
