"""Pattern learner: folds each manual application into the user's patterns."""

import logging
import sqlite3

from src.core.config import AutoApplyConfig
from src.core.db import (
    get_application_patterns,
    get_job_by_id,
    save_application_pattern,
    update_pattern_terms,
)
from src.core.schemas import ApplicationPattern

logger = logging.getLogger(__name__)


def _union(existing: list[str], new: list[str]) -> list[str]:
    return list(dict.fromkeys([*existing, *(v for v in new if v)]))


def find_similar_pattern(
    keywords: list[str],
    patterns: list[ApplicationPattern],
    min_overlap: int = 2,
) -> ApplicationPattern | None:
    """Return the first pattern sharing at least ``min_overlap`` exact keywords."""
    for pattern in patterns:
        overlap = sum(1 for k in keywords if k in pattern.keywords)
        if overlap >= min_overlap:
            return pattern
    return None


def learn_from_manual_application(
    conn: sqlite3.Connection,
    user_id: int,
    job_id: int,
    config: AutoApplyConfig | None = None,
) -> ApplicationPattern | None:
    """Merge the applied job into a similar pattern, or start a new one.

    Keyword, company, and location sets only ever grow. The success rate is
    left untouched here. Store errors propagate to the caller.

    Returns:
        The created or updated pattern, or None if the job does not exist.
    """
    config = config or AutoApplyConfig()
    job = get_job_by_id(conn, job_id)
    if job is None:
        logger.debug("Job %d not found - nothing to learn", job_id)
        return None

    keywords = _union([], job.keywords or [])
    companies = [job.company] if job.company else []
    locations = [job.location] if job.location else []

    patterns = get_application_patterns(conn, user_id)
    similar = find_similar_pattern(keywords, patterns, config.min_keyword_overlap)

    if similar is not None and similar.id is not None:
        updated = similar.model_copy(update={
            "keywords": _union(similar.keywords, keywords),
            "companies": _union(similar.companies, companies),
            "locations": _union(similar.locations, locations),
            "application_count": similar.application_count + 1,
        })
        update_pattern_terms(
            conn,
            similar.id,
            keywords=updated.keywords,
            companies=updated.companies,
            locations=updated.locations,
            application_count=updated.application_count,
        )
        logger.info(
            "Merged job %d into pattern %d (%d applications)",
            job_id, similar.id, updated.application_count,
        )
        return updated

    pattern = ApplicationPattern(
        user_id=user_id,
        pattern_type="learned",
        keywords=keywords,
        companies=companies,
        locations=locations,
        min_relevance_score=config.learned_min_relevance,
        application_count=1,
        success_rate=0.0,
        is_active=True,
    )
    pattern_id = save_application_pattern(conn, pattern)
    logger.info("Created pattern %d for user %d from job %d", pattern_id, user_id, job_id)
    return pattern.model_copy(update={"id": pattern_id})
