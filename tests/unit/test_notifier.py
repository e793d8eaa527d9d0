"""Tests for job digests and notification delivery."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from src.core.config import NotificationConfig
from src.core.db import (
    get_notifications,
    init_db,
    insert_job,
    upsert_job_score,
    upsert_user_profile,
)
from src.core.schemas import JobPosting, JobScore, ScoredJob, UserProfile
from src.pipeline.notifier import (
    Notifier,
    check_and_notify,
    format_job_digest,
    format_time_ago,
    get_new_jobs,
    send_job_notification,
)

NOW = datetime(2024, 3, 1, 12, 0)


class RecordingNotifier(Notifier):
    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self._result = result
        self._error = error

    def send(self, recipient: str, subject: str, body: str) -> bool:
        if self._error is not None:
            raise self._error
        self.sent.append((recipient, subject, body))
        return self._result


@pytest.fixture
def db(tmp_path: pytest.TempPathFactory) -> sqlite3.Connection:  # type: ignore[type-arg]
    return init_db(tmp_path / "test.db")


def _scored(title: str, score: float | None, **kw: object) -> ScoredJob:
    return ScoredJob(job=JobPosting(title=title, **kw), score=score)  # type: ignore[arg-type]


def _store_job(
    db: sqlite3.Connection,
    external_id: str,
    score: float,
    hours_ago: float = 1,
) -> int:
    job_id = insert_job(db, JobPosting(
        external_id=external_id,
        source="linkedin",
        title=f"Job {external_id}",
        posted_at=datetime.now() - timedelta(hours=hours_ago),
    ))
    assert job_id is not None
    upsert_job_score(db, JobScore(job_id=job_id, user_id=1, relevance_score=score))
    return job_id


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatTimeAgo:
    def test_minutes(self) -> None:
        assert format_time_ago(NOW - timedelta(minutes=15), NOW) == "15 minutes ago"

    def test_hours(self) -> None:
        assert format_time_ago(NOW - timedelta(hours=3), NOW) == "3 hours ago"

    def test_days(self) -> None:
        assert format_time_ago(NOW - timedelta(days=2, hours=5), NOW) == "2 days ago"


class TestFormatJobDigest:
    def test_empty(self) -> None:
        assert format_job_digest([]) == "No new matching jobs found in this period."

    def test_lists_jobs_and_summary(self) -> None:
        jobs = [
            _scored("Data Scientist", 80, company="Acme", location="Berlin",
                    url="https://example.com/1", posted_at=NOW - timedelta(hours=2)),
            _scored("Analyst", 61, posted_at=None),
        ]
        body = format_job_digest(jobs, NOW)
        assert body.startswith("2 New Job Opportunities Found!")
        assert "1. Data Scientist" in body
        assert "   Company: Acme" in body
        assert "   Relevance Score: 80%" in body
        assert "   Posted: 2 hours ago" in body
        assert "   Apply: https://example.com/1" in body
        assert "2. Analyst" in body
        assert "   Company: Not specified" in body
        assert "   Posted: Unknown" in body
        assert "Total Jobs: 2" in body
        assert "Average Relevance: 70%" in body
        assert "Highest Match: 80%" in body

    def test_missing_score_counts_as_zero(self) -> None:
        body = format_job_digest([_scored("A", None), _scored("B", 50)], NOW)
        assert "Average Relevance: 25%" in body


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class TestSendJobNotification:
    def test_no_jobs(self, db: sqlite3.Connection) -> None:
        notifier = RecordingNotifier()
        assert send_job_notification(db, 1, [], "me@example.com", notifier) is False
        assert notifier.sent == []
        assert get_notifications(db, 1) == []

    def test_sends_and_logs(self, db: sqlite3.Connection) -> None:
        notifier = RecordingNotifier()
        jobs = [_scored("A", 70), _scored("B", 60)]
        assert send_job_notification(db, 1, jobs, "me@example.com", notifier) is True
        recipient, subject, _ = notifier.sent[0]
        assert recipient == "me@example.com"
        assert subject == "Job Hunter: 2 New Matching Jobs Found"
        log = get_notifications(db, 1)[0]
        assert log["status"] == "sent"
        assert log["job_count"] == 2

    def test_delivery_error_logged_as_failed(self, db: sqlite3.Connection) -> None:
        notifier = RecordingNotifier(error=ConnectionError("smtp down"))
        result = send_job_notification(db, 1, [_scored("A", 70)], "me@example.com", notifier)
        assert result is False
        assert get_notifications(db, 1)[0]["status"] == "failed"

    def test_rejected_delivery_logged_as_failed(self, db: sqlite3.Connection) -> None:
        notifier = RecordingNotifier(result=False)
        assert send_job_notification(db, 1, [_scored("A", 70)], "x@example.com", notifier) is False
        assert get_notifications(db, 1)[0]["status"] == "failed"


class TestGetNewJobs:
    def test_lookback_and_min_score(self, db: sqlite3.Connection) -> None:
        fresh = _store_job(db, "1", 80, hours_ago=1)
        _store_job(db, "2", 80, hours_ago=10)
        _store_job(db, "3", 20, hours_ago=1)
        jobs = get_new_jobs(db, 1, min_score=50, lookback_hours=5)
        assert [s.job.id for s in jobs] == [fresh]

    def test_timezone_aware_posting_time(self, db: sqlite3.Connection) -> None:
        job_id = insert_job(db, JobPosting(
            external_id="utc",
            title="Data Scientist",
            posted_at=datetime.now(timezone.utc) - timedelta(hours=2),
        ))
        assert job_id is not None
        upsert_job_score(db, JobScore(job_id=job_id, user_id=1, relevance_score=80))
        jobs = get_new_jobs(db, 1, min_score=50, lookback_hours=5)
        assert [s.job.id for s in jobs] == [job_id]
        assert "Posted: 2 hours ago" in format_job_digest(jobs)


class TestCheckAndNotify:
    def test_uses_profile_email(self, db: sqlite3.Connection) -> None:
        upsert_user_profile(db, UserProfile(user_id=1, notification_email="me@example.com"))
        _store_job(db, "1", 80)
        notifier = RecordingNotifier()
        assert check_and_notify(db, 1, notifier) == (True, 1)
        assert notifier.sent[0][0] == "me@example.com"

    def test_falls_back_to_configured_email(self, db: sqlite3.Connection) -> None:
        upsert_user_profile(db, UserProfile(user_id=1))
        _store_job(db, "1", 80)
        notifier = RecordingNotifier()
        config = NotificationConfig(default_email="team@example.com")
        assert check_and_notify(db, 1, notifier, config) == (True, 1)
        assert notifier.sent[0][0] == "team@example.com"

    def test_no_recipient(self, db: sqlite3.Connection) -> None:
        upsert_user_profile(db, UserProfile(user_id=1))
        _store_job(db, "1", 80)
        notifier = RecordingNotifier()
        assert check_and_notify(db, 1, notifier) == (False, 1)
        assert notifier.sent == []
        assert get_notifications(db, 1) == []

    def test_nothing_new(self, db: sqlite3.Connection) -> None:
        upsert_user_profile(db, UserProfile(user_id=1, notification_email="me@example.com"))
        _store_job(db, "1", 80, hours_ago=48)
        notifier = RecordingNotifier()
        assert check_and_notify(db, 1, notifier) == (False, 0)
        assert notifier.sent == []

    def test_profile_threshold_applied(self, db: sqlite3.Connection) -> None:
        upsert_user_profile(db, UserProfile(
            user_id=1, notification_email="me@example.com", relevance_threshold=75,
        ))
        _store_job(db, "1", 70)
        _store_job(db, "2", 90)
        assert check_and_notify(db, 1, RecordingNotifier()) == (True, 1)
