"""Job source backed by a YAML file of postings.

Stands in for real board integrations. Expected shape::

    jobs:
      - external_id: "stepstone-1001"
        source: stepstone
        title: "Energy Data Scientist"
        company: "Vattenfall"
        location: "Berlin, Germany"
        description: "..."
        keywords: ["data scientist", "energy", "python"]
        posted_hours_ago: 3
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from src.core.schemas import JobPosting
from src.platforms.base import JobSource

logger = logging.getLogger(__name__)


class YamlJobSource(JobSource):
    """Reads postings from a YAML file on every fetch."""

    def __init__(self, name: str, path: str | Path) -> None:
        self._name = name
        self._path = Path(path)

    @property
    def source_id(self) -> str:
        return self._name

    async def fetch(self) -> list[JobPosting]:
        if not self._path.exists():
            msg = f"Job source file not found: {self._path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(self._path.read_text()) or {}
        entries: list[dict[str, Any]] = raw.get("jobs") or []
        now = datetime.now()
        jobs = [self._to_posting(entry, now) for entry in entries]
        logger.debug("%s: loaded %d postings from %s", self._name, len(jobs), self._path)
        return jobs

    @staticmethod
    def _to_posting(entry: dict[str, Any], now: datetime) -> JobPosting:
        data = dict(entry)
        hours_ago = data.pop("posted_hours_ago", None)
        if hours_ago is not None and "posted_at" not in data:
            data["posted_at"] = now - timedelta(hours=float(hours_ago))
        return JobPosting.model_validate(data)
