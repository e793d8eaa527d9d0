"""Orchestrator: job refresh and the auto-apply run.

Auto-apply data flow per run:
  1. Profile gate: missing profile or auto-apply disabled is a no-op
  2. Active patterns: none means nothing to match against
  3. Scored jobs at/above the profile threshold (candidate window)
  4. Per job: already-applied check, matcher, confidence gate, apply
  5. Stop at the per-run cap; untried jobs are not counted as skipped

No locking: overlapping runs for one user can race on the same job. The
store's (user, job) uniqueness turns the loser's insert into a skip.
"""

import logging
import sqlite3
from datetime import datetime, timedelta

from src.core.config import AutoApplyConfig
from src.core.db import (
    DuplicateApplicationError,
    create_application,
    get_application_patterns,
    get_jobs_with_scores,
    get_user_profile,
    has_applied_to_job,
    insert_job,
    log_refresh,
)
from src.core.schemas import (
    Application,
    AutoApplyCandidate,
    AutoApplyResult,
    RefreshResult,
    ScoredJob,
    UserProfile,
)
from src.pipeline.matcher import match_application_pattern
from src.platforms.base import JobSource

logger = logging.getLogger(__name__)


def _relevance_threshold(profile: UserProfile, config: AutoApplyConfig) -> int:
    # 0 falls back to the default as well
    return profile.relevance_threshold or config.default_relevance_threshold


def process_auto_apply(
    conn: sqlite3.Connection,
    user_id: int,
    config: AutoApplyConfig | None = None,
) -> AutoApplyResult:
    """Auto-apply to scored jobs that match the user's learned patterns.

    Returns:
        AutoApplyResult with the number of applications created and the
        number of candidates skipped (already applied or not confident enough).
    """
    config = config or AutoApplyConfig()

    profile = get_user_profile(conn, user_id)
    if profile is None or not profile.auto_apply_enabled:
        logger.info("Auto-apply disabled for user %d", user_id)
        return AutoApplyResult()

    patterns = get_application_patterns(conn, user_id)
    if not patterns:
        logger.info("No active patterns for user %d - skipping auto-apply", user_id)
        return AutoApplyResult()

    candidates = get_jobs_with_scores(
        conn,
        user_id,
        min_score=_relevance_threshold(profile, config),
        limit=config.candidate_window,
    )

    applied = 0
    skipped = 0
    for scored in candidates:
        job = scored.job
        if job.id is None or has_applied_to_job(conn, user_id, job.id):
            skipped += 1
            continue

        match = match_application_pattern(job, patterns, config.match_threshold)
        if not match.matches or match.confidence < config.apply_confidence:
            logger.debug(
                "Skipping job %d: confidence %d below %d",
                job.id, match.confidence, config.apply_confidence,
            )
            skipped += 1
            continue

        application = Application(
            user_id=user_id,
            job_id=job.id,
            application_type="automatic",
            status="submitted",
            notes=(
                f"Auto-applied with {match.confidence}% pattern match confidence. "
                f"Relevance score: {scored.score or 0:g}"
            ),
        )
        try:
            create_application(conn, application)
        except DuplicateApplicationError:
            logger.info("Job %d was applied to concurrently - skipping", job.id)
            skipped += 1
            continue

        applied += 1
        logger.info("Auto-applied to job %d (%s)", job.id, job.title)
        if applied >= config.max_applications_per_run:
            logger.info("Reached %d auto-applications for this run", applied)
            break

    logger.info("Auto-apply for user %d: %d applied, %d skipped", user_id, applied, skipped)
    return AutoApplyResult(applied=applied, skipped=skipped)


def get_auto_apply_candidates(
    conn: sqlite3.Connection,
    user_id: int,
    config: AutoApplyConfig | None = None,
) -> list[AutoApplyCandidate]:
    """Preview which jobs match a pattern, without creating applications.

    Unlike ``process_auto_apply`` this does not require auto-apply to be
    enabled, so the user can see what would happen before turning it on.
    """
    config = config or AutoApplyConfig()

    profile = get_user_profile(conn, user_id)
    if profile is None:
        return []

    patterns = get_application_patterns(conn, user_id)
    if not patterns:
        return []

    scored_jobs = get_jobs_with_scores(
        conn,
        user_id,
        min_score=_relevance_threshold(profile, config),
        limit=config.preview_window,
    )

    candidates: list[AutoApplyCandidate] = []
    for scored in scored_jobs:
        job = scored.job
        if job.id is None or has_applied_to_job(conn, user_id, job.id):
            continue
        match = match_application_pattern(job, patterns, config.match_threshold)
        if match.matches:
            candidates.append(AutoApplyCandidate(
                job=job,
                score=scored.score,
                matched_keywords=scored.matched_keywords,
                auto_apply_confidence=match.confidence,
                would_auto_apply=match.confidence >= config.apply_confidence,
            ))
    return candidates


def get_matching_jobs(
    conn: sqlite3.Connection,
    user_id: int,
    min_score: float | None = None,
    max_age_hours: int | None = None,
    sources: list[str] | None = None,
    limit: int = 50,
) -> list[ScoredJob]:
    """List scored jobs for a user, optionally restricted to recent postings."""
    scored = get_jobs_with_scores(
        conn, user_id, min_score=min_score, sources=sources, limit=limit,
    )
    if max_age_hours is None:
        return scored
    cutoff = datetime.now() - timedelta(hours=max_age_hours)
    return [s for s in scored if s.job.posted_at is not None and s.job.posted_at >= cutoff]


async def refresh_jobs(
    conn: sqlite3.Connection,
    sources: list[JobSource],
    user_id: int | None = None,
    interval_hours: int = 5,
) -> RefreshResult:
    """Pull postings from every source and store the ones not seen before.

    A failing source is recorded as a failed refresh and the error re-raised.
    """
    started_at = datetime.now()
    jobs_found = 0
    new_jobs = 0

    for source in sources:
        try:
            postings = await source.fetch()
        except Exception as e:
            logger.error("Refresh from '%s' failed: %s", source.source_id, e)
            log_refresh(
                conn,
                source=source.source_id,
                jobs_found=jobs_found,
                new_jobs=new_jobs,
                status="failed",
                user_id=user_id,
                error_message=str(e),
            )
            raise

        source_new = sum(1 for p in postings if insert_job(conn, p) is not None)
        logger.info("%s: %d postings, %d new", source.source_id, len(postings), source_new)
        jobs_found += len(postings)
        new_jobs += source_new

    finished_at = datetime.now()
    next_refresh_at = finished_at + timedelta(hours=interval_hours)
    log_refresh(
        conn,
        source="all",
        jobs_found=jobs_found,
        new_jobs=new_jobs,
        status="success",
        user_id=user_id,
        refreshed_at=finished_at,
        next_refresh_at=next_refresh_at,
    )

    return RefreshResult(
        jobs_found=jobs_found,
        new_jobs=new_jobs,
        started_at=started_at,
        finished_at=finished_at,
        next_refresh_at=next_refresh_at,
    )
