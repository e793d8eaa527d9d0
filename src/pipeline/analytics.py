"""Application statistics for the dashboard."""

import sqlite3
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from src.core.db import get_application_stats, get_applications, get_last_refresh


def success_rate(stats: dict[str, int]) -> int:
    """Percentage of responses that led to an interview or offer."""
    positive = stats["interview"] + stats["accepted"]
    responses = positive + stats["rejected"]
    if responses == 0:
        return 0
    return round(positive / responses * 100)


def application_overview(conn: sqlite3.Connection, user_id: int) -> dict[str, Any]:
    """Summarize a user's applications and the last job refresh."""
    stats = get_application_stats(conn, user_id)
    recent = get_applications(
        conn, user_id, since=datetime.now() - timedelta(days=30), limit=10,
    )
    last_refresh = get_last_refresh(conn, user_id)
    return {
        "total_applications": stats["total"],
        "manual_applications": stats["manual"],
        "automatic_applications": stats["automatic"],
        "pending_applications": stats["pending"],
        "interviews_scheduled": stats["interview"],
        "accepted_offers": stats["accepted"],
        "rejected_applications": stats["rejected"],
        "success_rate": success_rate(stats),
        "last_refresh": last_refresh["refreshed_at"] if last_refresh else None,
        "next_refresh": last_refresh["next_refresh_at"] if last_refresh else None,
        "recent_applications": recent,
    }


def application_trend(
    conn: sqlite3.Connection,
    user_id: int,
    days: int = 30,
) -> list[dict[str, Any]]:
    """Per-day manual/automatic application counts, oldest day first."""
    since = datetime.now() - timedelta(days=days)
    apps = get_applications(conn, user_id, since=since, limit=10_000)
    by_day: dict[str, dict[str, int]] = defaultdict(lambda: {"manual": 0, "automatic": 0})
    for app in apps:
        by_day[app.applied_at.date().isoformat()][app.application_type] += 1
    return [{"date": day, **counts} for day, counts in sorted(by_day.items())]
