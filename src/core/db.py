"""SQLite database layer for jobs, scores, profiles, applications, and patterns."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from src.core.schemas import (
    Application,
    ApplicationPattern,
    JobPosting,
    JobScore,
    ScoredJob,
    UserProfile,
)

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id     TEXT,
    source          TEXT    NOT NULL,
    title           TEXT    NOT NULL DEFAULT '',
    company         TEXT,
    location        TEXT,
    description     TEXT,
    requirements    TEXT,
    salary          TEXT,
    job_type        TEXT,
    url             TEXT,
    posted_at       TEXT,
    scraped_at      TEXT    NOT NULL,
    is_active       INTEGER NOT NULL DEFAULT 1,
    keywords        TEXT    NOT NULL DEFAULT '[]',
    UNIQUE(external_id, source)
);
"""

_JOB_SCORES_TABLE = """
CREATE TABLE IF NOT EXISTS job_scores (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id           INTEGER NOT NULL,
    user_id          INTEGER NOT NULL,
    relevance_score  REAL    NOT NULL,
    matched_keywords TEXT    NOT NULL DEFAULT '[]',
    calculated_at    TEXT    NOT NULL,
    UNIQUE(job_id, user_id)
);
"""

_USER_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id             INTEGER PRIMARY KEY,
    data                TEXT    NOT NULL,
    updated_at          TEXT    NOT NULL
);
"""

_APPLICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS applications (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id           INTEGER NOT NULL,
    job_id            INTEGER NOT NULL,
    application_type  TEXT    NOT NULL,
    status            TEXT    NOT NULL DEFAULT 'pending',
    applied_at        TEXT    NOT NULL,
    response_at       TEXT,
    notes             TEXT,
    cover_letter      TEXT,
    UNIQUE(user_id, job_id)
);
"""

_PATTERNS_TABLE = """
CREATE TABLE IF NOT EXISTS application_patterns (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id              INTEGER NOT NULL,
    pattern_type         TEXT,
    keywords             TEXT    NOT NULL DEFAULT '[]',
    companies            TEXT    NOT NULL DEFAULT '[]',
    locations            TEXT    NOT NULL DEFAULT '[]',
    min_relevance_score  INTEGER,
    application_count    INTEGER NOT NULL DEFAULT 0,
    success_rate         REAL    NOT NULL DEFAULT 0.0,
    is_active            INTEGER NOT NULL DEFAULT 1,
    created_at           TEXT    NOT NULL
);
"""

_NOTIFICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS email_notifications (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id          INTEGER NOT NULL,
    recipient_email  TEXT    NOT NULL,
    subject          TEXT,
    job_count        INTEGER NOT NULL DEFAULT 0,
    sent_at          TEXT    NOT NULL,
    status           TEXT    NOT NULL DEFAULT 'pending'
);
"""

_REFRESH_LOGS_TABLE = """
CREATE TABLE IF NOT EXISTS refresh_logs (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id          INTEGER,
    source           TEXT,
    jobs_found       INTEGER NOT NULL DEFAULT 0,
    new_jobs         INTEGER NOT NULL DEFAULT 0,
    refreshed_at     TEXT    NOT NULL,
    next_refresh_at  TEXT,
    status           TEXT    NOT NULL DEFAULT 'success',
    error_message    TEXT
);
"""

_TABLES = (
    _JOBS_TABLE,
    _JOB_SCORES_TABLE,
    _USER_PROFILES_TABLE,
    _APPLICATIONS_TABLE,
    _PATTERNS_TABLE,
    _NOTIFICATIONS_TABLE,
    _REFRESH_LOGS_TABLE,
)


class DuplicateApplicationError(Exception):
    """An application for this (user, job) pair already exists."""

    def __init__(self, user_id: int, job_id: int) -> None:
        super().__init__(f"User {user_id} has already applied to job {job_id}")
        self.user_id = user_id
        self.job_id = job_id


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    for ddl in _TABLES:
        conn.execute(ddl)
    conn.commit()
    return conn


def _dumps(values: list[str] | None) -> str:
    return json.dumps(list(values or []))


def _loads(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(json.loads(raw))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def _row_to_job(row: sqlite3.Row) -> JobPosting:
    return JobPosting(
        id=row["id"],
        external_id=row["external_id"],
        source=row["source"],
        title=row["title"],
        company=row["company"],
        location=row["location"],
        description=row["description"],
        requirements=row["requirements"],
        salary=row["salary"],
        job_type=row["job_type"],
        url=row["url"],
        posted_at=_parse_dt(row["posted_at"]),
        is_active=bool(row["is_active"]),
        keywords=_loads(row["keywords"]),
    )


def insert_job(conn: sqlite3.Connection, job: JobPosting) -> int | None:
    """Insert a job, ignoring it if (external_id, source) already exists.

    Returns the new row ID, or None if it was a duplicate.
    """
    try:
        cursor = conn.execute(
            """
            INSERT INTO jobs
                (external_id, source, title, company, location, description,
                 requirements, salary, job_type, url, posted_at, scraped_at,
                 is_active, keywords)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                job.external_id,
                job.source,
                job.title or "",
                job.company,
                job.location,
                job.description,
                job.requirements,
                job.salary,
                job.job_type,
                job.url,
                _iso(job.posted_at),
                datetime.now().isoformat(),
                int(job.is_active),
                _dumps(job.keywords),
            ),
        )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        return None


def get_job_by_id(conn: sqlite3.Connection, job_id: int) -> JobPosting | None:
    row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
    return _row_to_job(row) if row is not None else None


def get_job_by_external_id(
    conn: sqlite3.Connection,
    external_id: str,
    source: str,
) -> JobPosting | None:
    row = conn.execute(
        "SELECT * FROM jobs WHERE external_id = ? AND source = ? LIMIT 1",
        (external_id, source),
    ).fetchone()
    return _row_to_job(row) if row is not None else None


def get_jobs(
    conn: sqlite3.Connection,
    sources: list[str] | None = None,
    min_posted_at: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[JobPosting]:
    """Return active jobs, newest first."""
    clauses = ["is_active = 1"]
    params: list[Any] = []
    if sources:
        clauses.append(f"source IN ({', '.join('?' for _ in sources)})")
        params.extend(sources)
    if min_posted_at is not None:
        clauses.append("posted_at >= ?")
        params.append(min_posted_at.isoformat())
    params.extend([limit, offset])
    rows = conn.execute(
        f"""
        SELECT * FROM jobs
        WHERE {' AND '.join(clauses)}
        ORDER BY posted_at DESC, id DESC
        LIMIT ? OFFSET ?
        """,
        params,
    ).fetchall()
    return [_row_to_job(r) for r in rows]


def deactivate_job(conn: sqlite3.Connection, job_id: int) -> None:
    conn.execute("UPDATE jobs SET is_active = 0 WHERE id = ?", (job_id,))
    conn.commit()


# ---------------------------------------------------------------------------
# Job scores
# ---------------------------------------------------------------------------


def upsert_job_score(conn: sqlite3.Connection, score: JobScore) -> None:
    """Insert or replace the score for (job, user). Latest computation wins."""
    conn.execute(
        """
        INSERT INTO job_scores (job_id, user_id, relevance_score, matched_keywords, calculated_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(job_id, user_id)
        DO UPDATE SET
            relevance_score = excluded.relevance_score,
            matched_keywords = excluded.matched_keywords,
            calculated_at = excluded.calculated_at
        """,
        (
            score.job_id,
            score.user_id,
            score.relevance_score,
            _dumps(score.matched_keywords),
            score.calculated_at.isoformat(),
        ),
    )
    conn.commit()


def get_job_score(conn: sqlite3.Connection, job_id: int, user_id: int) -> JobScore | None:
    row = conn.execute(
        "SELECT * FROM job_scores WHERE job_id = ? AND user_id = ?",
        (job_id, user_id),
    ).fetchone()
    if row is None:
        return None
    return JobScore(
        job_id=row["job_id"],
        user_id=row["user_id"],
        relevance_score=row["relevance_score"],
        matched_keywords=_loads(row["matched_keywords"]),
        calculated_at=datetime.fromisoformat(row["calculated_at"]),
    )


def get_jobs_with_scores(
    conn: sqlite3.Connection,
    user_id: int,
    min_score: float | None = None,
    sources: list[str] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[ScoredJob]:
    """Return active jobs joined with the user's scores, most relevant first.

    Jobs the user has no score for are included (score None) unless
    ``min_score`` is given.
    """
    clauses = ["j.is_active = 1"]
    params: list[Any] = [user_id]
    if min_score is not None:
        clauses.append("s.relevance_score >= ?")
        params.append(min_score)
    if sources:
        clauses.append(f"j.source IN ({', '.join('?' for _ in sources)})")
        params.extend(sources)
    params.extend([limit, offset])
    rows = conn.execute(
        f"""
        SELECT j.*, s.relevance_score AS score, s.matched_keywords AS matched
        FROM jobs j
        LEFT JOIN job_scores s ON s.job_id = j.id AND s.user_id = ?
        WHERE {' AND '.join(clauses)}
        ORDER BY s.relevance_score IS NULL, s.relevance_score DESC, j.posted_at DESC, j.id
        LIMIT ? OFFSET ?
        """,
        params,
    ).fetchall()
    return [
        ScoredJob(job=_row_to_job(r), score=r["score"], matched_keywords=_loads(r["matched"]))
        for r in rows
    ]


# ---------------------------------------------------------------------------
# User profiles
# ---------------------------------------------------------------------------


def upsert_user_profile(conn: sqlite3.Connection, profile: UserProfile) -> None:
    conn.execute(
        """
        INSERT INTO user_profiles (user_id, data, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT(user_id)
        DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
        """,
        (profile.user_id, profile.model_dump_json(), datetime.now().isoformat()),
    )
    conn.commit()


def get_user_profile(conn: sqlite3.Connection, user_id: int) -> UserProfile | None:
    row = conn.execute(
        "SELECT data FROM user_profiles WHERE user_id = ?", (user_id,),
    ).fetchone()
    if row is None:
        return None
    return UserProfile.model_validate_json(row["data"])


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


def _row_to_application(row: sqlite3.Row) -> Application:
    return Application(
        id=row["id"],
        user_id=row["user_id"],
        job_id=row["job_id"],
        application_type=row["application_type"],
        status=row["status"],
        applied_at=datetime.fromisoformat(row["applied_at"]),
        response_at=_parse_dt(row["response_at"]),
        notes=row["notes"],
        cover_letter=row["cover_letter"],
    )


def create_application(conn: sqlite3.Connection, application: Application) -> int:
    """Insert an application. Returns the row ID.

    Raises DuplicateApplicationError if (user_id, job_id) already exists.
    """
    try:
        cursor = conn.execute(
            """
            INSERT INTO applications
                (user_id, job_id, application_type, status, applied_at,
                 response_at, notes, cover_letter)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                application.user_id,
                application.job_id,
                application.application_type,
                application.status,
                application.applied_at.isoformat(),
                _iso(application.response_at),
                application.notes,
                application.cover_letter,
            ),
        )
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise DuplicateApplicationError(application.user_id, application.job_id) from e
    conn.commit()
    return cursor.lastrowid or 0


def has_applied_to_job(conn: sqlite3.Connection, user_id: int, job_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM applications WHERE user_id = ? AND job_id = ? LIMIT 1",
        (user_id, job_id),
    ).fetchone()
    return row is not None


def get_application(conn: sqlite3.Connection, application_id: int) -> Application | None:
    row = conn.execute(
        "SELECT * FROM applications WHERE id = ?", (application_id,),
    ).fetchone()
    return _row_to_application(row) if row is not None else None


def get_applications(
    conn: sqlite3.Connection,
    user_id: int,
    application_type: str | None = None,
    status: str | None = None,
    since: datetime | None = None,
    limit: int = 100,
) -> list[Application]:
    """Return a user's applications, most recent first."""
    clauses = ["user_id = ?"]
    params: list[Any] = [user_id]
    if application_type is not None:
        clauses.append("application_type = ?")
        params.append(application_type)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if since is not None:
        clauses.append("applied_at >= ?")
        params.append(since.isoformat())
    params.append(limit)
    rows = conn.execute(
        f"""
        SELECT * FROM applications
        WHERE {' AND '.join(clauses)}
        ORDER BY applied_at DESC, id DESC
        LIMIT ?
        """,
        params,
    ).fetchall()
    return [_row_to_application(r) for r in rows]


def update_application_status(
    conn: sqlite3.Connection,
    application_id: int,
    status: str,
    response_at: datetime | None = None,
) -> bool:
    """Set an application's status. Returns False if the ID does not exist."""
    if response_at is not None:
        cursor = conn.execute(
            "UPDATE applications SET status = ?, response_at = ? WHERE id = ?",
            (status, response_at.isoformat(), application_id),
        )
    else:
        cursor = conn.execute(
            "UPDATE applications SET status = ? WHERE id = ?",
            (status, application_id),
        )
    conn.commit()
    return cursor.rowcount > 0


def get_application_stats(conn: sqlite3.Connection, user_id: int) -> dict[str, int]:
    """Count a user's applications by type and by status."""
    stats = {
        "total": 0, "manual": 0, "automatic": 0, "pending": 0, "submitted": 0,
        "viewed": 0, "interview": 0, "accepted": 0, "rejected": 0,
    }
    rows = conn.execute(
        """
        SELECT application_type, status, COUNT(*) AS n
        FROM applications WHERE user_id = ?
        GROUP BY application_type, status
        """,
        (user_id,),
    ).fetchall()
    for row in rows:
        stats["total"] += row["n"]
        stats[row["application_type"]] += row["n"]
        stats[row["status"]] += row["n"]
    return stats


# ---------------------------------------------------------------------------
# Application patterns
# ---------------------------------------------------------------------------


def _row_to_pattern(row: sqlite3.Row) -> ApplicationPattern:
    return ApplicationPattern(
        id=row["id"],
        user_id=row["user_id"],
        pattern_type=row["pattern_type"] or "learned",
        keywords=_loads(row["keywords"]),
        companies=_loads(row["companies"]),
        locations=_loads(row["locations"]),
        min_relevance_score=row["min_relevance_score"],
        application_count=row["application_count"],
        success_rate=row["success_rate"],
        is_active=bool(row["is_active"]),
    )


def save_application_pattern(conn: sqlite3.Connection, pattern: ApplicationPattern) -> int:
    """Insert a new pattern. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO application_patterns
            (user_id, pattern_type, keywords, companies, locations,
             min_relevance_score, application_count, success_rate, is_active, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            pattern.user_id,
            pattern.pattern_type,
            _dumps(pattern.keywords),
            _dumps(pattern.companies),
            _dumps(pattern.locations),
            pattern.min_relevance_score,
            pattern.application_count,
            pattern.success_rate,
            int(pattern.is_active),
            datetime.now().isoformat(),
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


def get_application_patterns(conn: sqlite3.Connection, user_id: int) -> list[ApplicationPattern]:
    """Return the user's active patterns in creation order."""
    rows = conn.execute(
        """
        SELECT * FROM application_patterns
        WHERE user_id = ? AND is_active = 1
        ORDER BY id
        """,
        (user_id,),
    ).fetchall()
    return [_row_to_pattern(r) for r in rows]


def update_pattern_terms(
    conn: sqlite3.Connection,
    pattern_id: int,
    keywords: list[str],
    companies: list[str],
    locations: list[str],
    application_count: int,
) -> None:
    """Overwrite a pattern's keyword/company/location sets and count."""
    conn.execute(
        """
        UPDATE application_patterns
        SET keywords = ?, companies = ?, locations = ?, application_count = ?
        WHERE id = ?
        """,
        (_dumps(keywords), _dumps(companies), _dumps(locations), application_count, pattern_id),
    )
    conn.commit()


def update_pattern_stats(
    conn: sqlite3.Connection,
    pattern_id: int,
    application_count: int,
    success_rate: float,
) -> None:
    conn.execute(
        "UPDATE application_patterns SET application_count = ?, success_rate = ? WHERE id = ?",
        (application_count, success_rate, pattern_id),
    )
    conn.commit()


def deactivate_pattern(conn: sqlite3.Connection, pattern_id: int) -> None:
    conn.execute("UPDATE application_patterns SET is_active = 0 WHERE id = ?", (pattern_id,))
    conn.commit()


# ---------------------------------------------------------------------------
# Notification and refresh logs
# ---------------------------------------------------------------------------


def log_notification(
    conn: sqlite3.Connection,
    user_id: int,
    recipient_email: str,
    subject: str,
    job_count: int,
    status: str,
    sent_at: datetime | None = None,
) -> int:
    cursor = conn.execute(
        """
        INSERT INTO email_notifications
            (user_id, recipient_email, subject, job_count, sent_at, status)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            recipient_email,
            subject,
            job_count,
            (sent_at or datetime.now()).isoformat(),
            status,
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


def get_notifications(
    conn: sqlite3.Connection,
    user_id: int,
    limit: int = 50,
) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT * FROM email_notifications
        WHERE user_id = ?
        ORDER BY sent_at DESC, id DESC
        LIMIT ?
        """,
        (user_id, limit),
    ).fetchall()
    return [dict(r) for r in rows]


def log_refresh(
    conn: sqlite3.Connection,
    source: str,
    jobs_found: int,
    new_jobs: int,
    status: str,
    user_id: int | None = None,
    refreshed_at: datetime | None = None,
    next_refresh_at: datetime | None = None,
    error_message: str | None = None,
) -> int:
    """Record a refresh run. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO refresh_logs
            (user_id, source, jobs_found, new_jobs, refreshed_at,
             next_refresh_at, status, error_message)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            source,
            jobs_found,
            new_jobs,
            (refreshed_at or datetime.now()).isoformat(),
            _iso(next_refresh_at),
            status,
            error_message,
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


def get_last_refresh(
    conn: sqlite3.Connection,
    user_id: int | None = None,
) -> dict[str, Any] | None:
    """Return the most recent refresh log row (for the user, if given)."""
    if user_id is not None:
        row = conn.execute(
            "SELECT * FROM refresh_logs WHERE user_id = ? ORDER BY refreshed_at DESC, id DESC LIMIT 1",
            (user_id,),
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT * FROM refresh_logs ORDER BY refreshed_at DESC, id DESC LIMIT 1",
        ).fetchone()
    if row is None:
        return None
    result = dict(row)
    result["refreshed_at"] = _parse_dt(result["refreshed_at"])
    result["next_refresh_at"] = _parse_dt(result["next_refresh_at"])
    return result
