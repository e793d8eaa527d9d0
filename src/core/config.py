"""Configuration models and YAML loader for the job hunter engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

HIGH_PRIORITY_KEYWORDS = (
    "data scientist", "data science", "energy systems", "power systems",
    "machine learning", "ml engineer", "time series", "forecasting",
    "anomaly detection", "python", "renewable energy", "grid", "voltage",
    "lstm", "tensorflow", "pandas", "numpy", "deep learning", "neural network",
    "predictive modeling", "data analysis", "energy analyst", "power analyst",
)

MEDIUM_PRIORITY_KEYWORDS = (
    "data analyst", "data engineer", "automation", "research", "analyst",
    "modeling", "visualization", "sql", "power", "energy", "electricity",
    "smart grid", "wind", "solar", "battery", "storage", "sustainability",
    "climate", "carbon", "emissions", "efficiency", "optimization",
    "statistics", "matlab", "grafana", "influxdb", "scikit-learn",
)

LOW_PRIORITY_KEYWORDS = (
    "engineer", "scientist", "researcher", "developer", "consultant",
    "manager", "lead", "senior", "junior", "intern", "student",
)


def _clean_keywords(v: list[str]) -> list[str]:
    return [kw.lower().strip() for kw in v if kw.strip()]


class ScoringConfig(BaseModel):
    """Keyword tiers and point values for relevance scoring."""

    high_priority_points: int = Field(default=10, ge=0)
    medium_priority_points: int = Field(default=5, ge=0)
    low_priority_points: int = Field(default=2, ge=0)
    skill_points: int = Field(default=8, ge=0)
    high_priority_keywords: list[str] = Field(default_factory=lambda: list(HIGH_PRIORITY_KEYWORDS))
    medium_priority_keywords: list[str] = Field(
        default_factory=lambda: list(MEDIUM_PRIORITY_KEYWORDS),
    )
    low_priority_keywords: list[str] = Field(default_factory=lambda: list(LOW_PRIORITY_KEYWORDS))

    @field_validator("high_priority_keywords", "medium_priority_keywords", "low_priority_keywords")
    @classmethod
    def normalize_keywords(cls, v: list[str]) -> list[str]:
        return _clean_keywords(v)

    def tiers(self) -> list[tuple[list[str], int]]:
        """Return (keywords, points) pairs, highest tier first."""
        return [
            (self.high_priority_keywords, self.high_priority_points),
            (self.medium_priority_keywords, self.medium_priority_points),
            (self.low_priority_keywords, self.low_priority_points),
        ]


class AutoApplyConfig(BaseModel):
    """Thresholds and caps for pattern matching and automatic applications."""

    match_threshold: int = Field(default=60, ge=0, le=100)
    apply_confidence: int = Field(default=70, ge=0, le=100)
    max_applications_per_run: int = Field(default=5, ge=1)
    candidate_window: int = Field(default=100, ge=1)
    preview_window: int = Field(default=50, ge=1)
    default_relevance_threshold: int = Field(default=50, ge=0, le=100)
    learned_min_relevance: int = Field(default=60, ge=0, le=100)
    min_keyword_overlap: int = Field(default=2, ge=1)


class NotificationConfig(BaseModel):
    """New-job digest settings. No recipient is assumed unless configured."""

    default_email: str | None = None
    lookback_hours: int = Field(default=5, ge=1)
    max_jobs: int = Field(default=50, ge=1)

    @field_validator("default_email")
    @classmethod
    def email_shape(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if "@" not in v:
            msg = f"default_email must be an email address, got '{v}'"
            raise ValueError(msg)
        return v


class RefreshConfig(BaseModel):
    """Job refresh cadence and scoring pass size."""

    interval_hours: int = Field(default=5, ge=1)
    score_limit: int = Field(default=500, ge=1)


class SourceConfig(BaseModel):
    """A YAML file of postings consumed by the refresh command."""

    name: str
    path: str

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "source name must not be empty"
            raise ValueError(msg)
        return v.strip()


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobs.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    auto_apply: AutoApplyConfig = Field(default_factory=AutoApplyConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    sources: list[SourceConfig] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
