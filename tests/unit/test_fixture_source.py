"""Tests for the YAML-backed job source."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from src.platforms.base import JobSource
from src.platforms.fixture import YamlJobSource


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "jobs.yaml"
    path.write_text(dedent(content))
    return path


class TestYamlJobSource:
    def test_is_job_source(self, tmp_path: Path) -> None:
        source = YamlJobSource("sample", tmp_path / "jobs.yaml")
        assert isinstance(source, JobSource)
        assert source.source_id == "sample"

    async def test_loads_postings(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """\
            jobs:
              - external_id: "s-1"
                source: stepstone
                title: Energy Data Scientist
                company: Vattenfall
                keywords: [data scientist, energy]
                posted_hours_ago: 3
              - external_id: "i-2"
                source: indeed
                title: Analyst
        """)
        before = datetime.now()
        jobs = await YamlJobSource("sample", path).fetch()

        assert [j.external_id for j in jobs] == ["s-1", "i-2"]
        first = jobs[0]
        assert first.source == "stepstone"
        assert first.keywords == ["data scientist", "energy"]
        assert first.posted_at is not None
        age = before - first.posted_at
        assert timedelta(hours=2, minutes=59) < age < timedelta(hours=3, minutes=1)
        assert jobs[1].posted_at is None

    async def test_explicit_posted_at_wins(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """\
            jobs:
              - external_id: "1"
                posted_at: 2024-01-02T03:04:05
                posted_hours_ago: 100
        """)
        jobs = await YamlJobSource("sample", path).fetch()
        assert jobs[0].posted_at == datetime(2024, 1, 2, 3, 4, 5)

    async def test_utc_posted_at_becomes_local_naive(self, tmp_path: Path) -> None:
        posted = (datetime.now(timezone.utc) - timedelta(hours=4)).replace(microsecond=0)
        path = _write(tmp_path, f"""\
            jobs:
              - external_id: "1"
                posted_at: {posted.strftime("%Y-%m-%dT%H:%M:%SZ")}
        """)
        jobs = await YamlJobSource("sample", path).fetch()
        posted_at = jobs[0].posted_at
        assert posted_at is not None
        assert posted_at.tzinfo is None
        assert posted_at == posted.astimezone().replace(tzinfo=None)

    async def test_empty_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "")
        assert await YamlJobSource("sample", path).fetch() == []

    async def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await YamlJobSource("sample", tmp_path / "missing.yaml").fetch()

    async def test_unknown_board_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """\
            jobs:
              - external_id: "1"
                source: monster
        """)
        with pytest.raises(ValidationError):
            await YamlJobSource("sample", path).fetch()

    async def test_example_file_loads(self) -> None:
        jobs = await YamlJobSource("sample", "config/jobs.example.yaml").fetch()
        assert len(jobs) == 4
        assert {j.source for j in jobs} == {"stepstone", "linkedin", "indeed", "datacareer"}
