"""Pattern matcher: decides whether a job fits one of a user's learned patterns.

Per-pattern score (capped at 100):
  1. Keyword overlap: bidirectional substring, >=2 hits +40, 1 hit +20
  2. Company: exact, case-insensitive +30
  3. Location: pattern location inside job location +20
  4. Free text: pattern keywords in title/description, +10 each, max +30

Patterns are scanned in the given order and the first one reaching the
threshold wins, even if a later pattern would score higher.
"""

import logging
from collections.abc import Iterable

from src.core.schemas import ApplicationPattern, JobPosting, PatternMatch

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 60


def _normalized(values: Iterable[str] | None) -> list[str]:
    return [v.lower().strip() for v in values or [] if v and v.strip()]


def keyword_overlap(job_keywords: list[str], pattern_keywords: list[str]) -> int:
    """Count job keywords that contain, or are contained in, a pattern keyword."""
    return sum(
        1 for k in job_keywords
        if any(pk in k or k in pk for pk in pattern_keywords)
    )


def score_pattern(job: JobPosting, pattern: ApplicationPattern) -> int:
    """Compute the 0-100 match score of a single pattern against a job."""
    pattern_keywords = _normalized(pattern.keywords)
    job_keywords = _normalized(job.keywords)
    score = 0

    overlap = keyword_overlap(job_keywords, pattern_keywords)
    if overlap >= 2:
        score += 40
    elif overlap == 1:
        score += 20

    company = (job.company or "").lower().strip()
    if company and company in _normalized(pattern.companies):
        score += 30

    location = (job.location or "").lower()
    if location and any(loc in location for loc in _normalized(pattern.locations)):
        score += 20

    text = f"{job.title or ''} {job.description or ''}".lower()
    text_hits = sum(1 for pk in pattern_keywords if pk in text)
    score += min(30, text_hits * 10)

    return min(100, score)


def match_application_pattern(
    job: JobPosting,
    patterns: list[ApplicationPattern],
    threshold: int = MATCH_THRESHOLD,
) -> PatternMatch:
    """Return the first pattern whose score reaches ``threshold``.

    When nothing matches the confidence is 0, not the best near-miss score.
    """
    for pattern in patterns:
        score = score_pattern(job, pattern)
        if score >= threshold:
            logger.debug(
                "Job %s matched pattern %s with confidence %d", job.id, pattern.id, score,
            )
            return PatternMatch(matches=True, matched_pattern=pattern, confidence=score)
    return PatternMatch(matches=False, confidence=0)
