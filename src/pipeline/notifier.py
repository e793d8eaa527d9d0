"""New-job digests and their delivery through a pluggable notifier."""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from src.core.config import NotificationConfig
from src.core.db import get_jobs_with_scores, get_user_profile, log_notification
from src.core.schemas import ScoredJob

logger = logging.getLogger(__name__)

_RULE = "=" * 50
_DIVIDER = "-" * 50


class Notifier(ABC):
    """Delivery channel for digests (email, chat, ...)."""

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> bool:
        """Deliver a message. Returns True if it was accepted for delivery."""


class LogNotifier(Notifier):
    """Writes digests to the log instead of delivering them."""

    def send(self, recipient: str, subject: str, body: str) -> bool:
        logger.info("Notification to %s: %s\n%s", recipient, subject, body)
        return True


def format_time_ago(posted_at: datetime, now: datetime | None = None) -> str:
    diff = (now or datetime.now()) - posted_at
    hours = int(diff.total_seconds() // 3600)
    if hours < 1:
        return f"{int(diff.total_seconds() // 60)} minutes ago"
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def format_job_digest(jobs: list[ScoredJob], now: datetime | None = None) -> str:
    """Render scored jobs as a plain-text digest with a summary block."""
    if not jobs:
        return "No new matching jobs found in this period."

    lines = [f"{len(jobs)} New Job Opportunities Found!", "", _RULE, ""]
    for i, scored in enumerate(jobs, start=1):
        job = scored.job
        posted = format_time_ago(job.posted_at, now) if job.posted_at else "Unknown"
        lines.append(f"{i}. {job.title or 'Untitled'}")
        lines.append(f"   Company: {job.company or 'Not specified'}")
        lines.append(f"   Location: {job.location or 'Not specified'}")
        lines.append(f"   Relevance Score: {scored.score or 0:g}%")
        lines.append(f"   Posted: {posted}")
        if job.url:
            lines.append(f"   Apply: {job.url}")
        lines.extend(["", _DIVIDER, ""])

    scores = [s.score or 0 for s in jobs]
    lines.extend([
        "Summary:",
        f"Total Jobs: {len(jobs)}",
        f"Average Relevance: {round(sum(scores) / len(scores))}%",
        f"Highest Match: {max(scores):g}%",
    ])
    return "\n".join(lines)


def get_new_jobs(
    conn: sqlite3.Connection,
    user_id: int,
    min_score: float,
    lookback_hours: int,
    limit: int = 50,
) -> list[ScoredJob]:
    """Scored jobs at/above ``min_score`` posted within the lookback window."""
    cutoff = datetime.now() - timedelta(hours=lookback_hours)
    scored = get_jobs_with_scores(conn, user_id, min_score=min_score, limit=limit)
    return [s for s in scored if s.job.posted_at is not None and s.job.posted_at >= cutoff]


def send_job_notification(
    conn: sqlite3.Connection,
    user_id: int,
    jobs: list[ScoredJob],
    recipient: str,
    notifier: Notifier,
) -> bool:
    """Send a digest and record the attempt. Delivery errors are logged, not raised."""
    if not jobs:
        logger.debug("No jobs to notify user %d about", user_id)
        return False

    subject = f"Job Hunter: {len(jobs)} New Matching Jobs Found"
    body = format_job_digest(jobs)
    try:
        success = notifier.send(recipient, subject, body)
    except Exception:
        logger.exception("Notification to %s failed", recipient)
        success = False

    log_notification(
        conn,
        user_id=user_id,
        recipient_email=recipient,
        subject=subject,
        job_count=len(jobs),
        status="sent" if success else "failed",
    )
    logger.info(
        "Notification %s to %s with %d jobs", "sent" if success else "failed", recipient, len(jobs),
    )
    return success


def check_and_notify(
    conn: sqlite3.Connection,
    user_id: int,
    notifier: Notifier,
    config: NotificationConfig | None = None,
    default_threshold: int = 50,
) -> tuple[bool, int]:
    """Notify the user about relevant jobs posted since the lookback cutoff.

    The recipient is the profile's notification email, falling back to the
    configured default. With neither, nothing is sent.

    Returns:
        (notified, job_count)
    """
    config = config or NotificationConfig()
    profile = get_user_profile(conn, user_id)
    min_score = (profile.relevance_threshold if profile else None) or default_threshold

    jobs = get_new_jobs(conn, user_id, min_score, config.lookback_hours, config.max_jobs)
    if not jobs:
        return (False, 0)

    recipient = (profile.notification_email if profile else None) or config.default_email
    if not recipient:
        logger.warning("No notification recipient for user %d - skipping", user_id)
        return (False, len(jobs))

    return (send_job_notification(conn, user_id, jobs, recipient, notifier), len(jobs))
