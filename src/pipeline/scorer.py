"""Keyword-tier relevance scoring for job postings.

Score range: 0-100 (clamped). Points are additive across the three keyword
tiers plus user skills, so a posting can max out well before hitting every
keyword. Never raises on missing fields.
"""

import logging
import sqlite3

from src.core.config import ScoringConfig
from src.core.db import get_jobs, upsert_job_score
from src.core.schemas import JobPosting, JobScore, RelevanceResult

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = ScoringConfig()


def calculate_relevance_score(
    job: JobPosting,
    user_skills: list[str] | None = None,
    config: ScoringConfig | None = None,
) -> RelevanceResult:
    """Score a posting against the keyword tiers and optional user skills.

    A tier keyword hits when it appears in the lowercased title+description,
    or inside any of the posting's own keywords. Each user skill found in
    the title+description adds ``skill_points``.

    Args:
        job: The posting to score. Title, description and keywords may be None.
        user_skills: Optional skills from the user's profile.
        config: Tier keywords and point values; defaults to ScoringConfig().

    Returns:
        RelevanceResult with a 0-100 score and deduplicated matched keywords.
    """
    config = config or _DEFAULT_CONFIG
    text = f"{job.title or ''} {job.description or ''}".lower()
    job_keywords = [k.lower() for k in job.keywords or [] if k]

    score = 0
    matched: list[str] = []

    for keywords, points in config.tiers():
        for keyword in keywords:
            if keyword in text or any(keyword in k for k in job_keywords):
                score += points
                matched.append(keyword)

    for skill in user_skills or []:
        needle = skill.lower().strip()
        if needle and needle in text:
            score += config.skill_points
            matched.append(skill)

    # dict.fromkeys keeps first-seen order while dropping repeats
    return RelevanceResult(
        score=max(0, min(100, score)),
        matched_keywords=list(dict.fromkeys(matched)),
    )


def score_jobs_for_user(
    conn: sqlite3.Connection,
    user_id: int,
    user_skills: list[str] | None = None,
    config: ScoringConfig | None = None,
    limit: int = 500,
) -> int:
    """Score every active job for a user, upserting one JobScore per job.

    Sequential and not transactional: an interrupted pass leaves some jobs
    rescored and others not, which a rerun fixes.

    Returns:
        Number of jobs scored.
    """
    jobs = get_jobs(conn, limit=limit)
    scored = 0
    for job in jobs:
        if job.id is None:
            continue
        result = calculate_relevance_score(job, user_skills, config)
        upsert_job_score(
            conn,
            JobScore(
                job_id=job.id,
                user_id=user_id,
                relevance_score=result.score,
                matched_keywords=result.matched_keywords,
            ),
        )
        scored += 1
    logger.info("Scored %d jobs for user %d", scored, user_id)
    return scored
