"""Manual application submission and status tracking."""

import logging
import sqlite3
from datetime import datetime

from src.core.config import AutoApplyConfig
from src.core.db import (
    DuplicateApplicationError,
    create_application,
    get_job_by_id,
    has_applied_to_job,
)
from src.core.db import update_application_status as _store_status
from src.core.schemas import APPLICATION_STATUSES, Application
from src.pipeline.learner import learn_from_manual_application

logger = logging.getLogger(__name__)

# Statuses that mean the employer has responded
_RESPONSE_STATUSES = frozenset({"viewed", "interview", "rejected", "accepted"})


class JobNotFoundError(LookupError):
    """The referenced job does not exist."""


def submit_manual_application(
    conn: sqlite3.Connection,
    user_id: int,
    job_id: int,
    notes: str | None = None,
    cover_letter: str | None = None,
    config: AutoApplyConfig | None = None,
) -> int:
    """Record a manual application, then learn from it.

    Raises:
        JobNotFoundError: if the job does not exist.
        DuplicateApplicationError: if the user already applied to this job.

    Returns:
        The new application's ID.
    """
    if get_job_by_id(conn, job_id) is None:
        msg = f"Job {job_id} not found"
        raise JobNotFoundError(msg)
    if has_applied_to_job(conn, user_id, job_id):
        raise DuplicateApplicationError(user_id, job_id)

    application_id = create_application(conn, Application(
        user_id=user_id,
        job_id=job_id,
        application_type="manual",
        status="submitted",
        notes=notes,
        cover_letter=cover_letter,
    ))
    logger.info("User %d applied manually to job %d", user_id, job_id)

    learn_from_manual_application(conn, user_id, job_id, config)
    return application_id


def update_application_status(
    conn: sqlite3.Connection,
    application_id: int,
    status: str,
) -> bool:
    """Move an application to a new status, stamping the response time when relevant.

    Returns False if the application does not exist.
    """
    if status not in APPLICATION_STATUSES:
        msg = f"status must be one of {list(APPLICATION_STATUSES)}, got '{status}'"
        raise ValueError(msg)
    response_at = datetime.now() if status in _RESPONSE_STATUSES else None
    return _store_status(conn, application_id, status, response_at)
