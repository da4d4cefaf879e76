"""Score an applicant against a job with four independent signals.

    similarity   cosine of job and resume embeddings, capped    0 – 0.80
    keyword      share of required skills found in the resume  0 – 0.03
    experience   candidate years against required years        0 – 0.03
    role         profession vs. job role similarity band       -0.10 – 0.05

``aggregate`` sums the signals and clamps the total to [0, 1].
"""
from __future__ import annotations

import math
import re
from typing import Sequence

from talentnest.config import ScoringConfig

DEFAULT_SCORING = ScoringConfig()

_REQUIRED_YEARS_RE = re.compile(r"(\d+)\+?\s*(?:years|yrs)", re.IGNORECASE)
_RANGE_RE = re.compile(r"(\d+)\s*-\s*(\d+)")
_NUMBER_RE = re.compile(r"(\d+)")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """``dot(a, b) / (|a| * |b|)``; 0 for zero vectors or mismatched sizes."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = math.fsum(x * y for x, y in zip(a, b))
    mag_a = math.sqrt(math.fsum(x * x for x in a))
    mag_b = math.sqrt(math.fsum(y * y for y in b))
    if not mag_a or not mag_b:
        return 0.0
    return dot / (mag_a * mag_b)


def semantic_similarity(
    job_vector: Sequence[float],
    resume_vector: Sequence[float],
    config: ScoringConfig = DEFAULT_SCORING,
) -> float:
    return min(cosine_similarity(job_vector, resume_vector), config.similarity_cap)


def keyword_match(
    resume_text: str,
    skills: Sequence[str],
    config: ScoringConfig = DEFAULT_SCORING,
) -> float:
    if not resume_text or not skills:
        return 0.0
    lower_text = resume_text.lower()
    matched = [s for s in skills if s and s.lower() in lower_text]
    proportion = len(matched) / len(skills)
    return min(proportion * config.keyword_bonus_max, config.keyword_bonus_max)


def parse_required_years(text: str | None) -> int:
    """First "<n> years" / "<n>+ yrs" figure in *text*, else 0."""
    if not text:
        return 0
    m = _REQUIRED_YEARS_RE.search(text)
    return int(m.group(1)) if m else 0


def parse_candidate_years(experience_years: str | None) -> int:
    """Upper bound of a "2-4" range, else the first integer, else 0."""
    if not experience_years:
        return 0
    m = _RANGE_RE.search(str(experience_years))
    if m:
        return int(m.group(2))
    m = _NUMBER_RE.search(str(experience_years))
    return int(m.group(1)) if m else 0


def experience_match(
    job_description: str,
    experience_years: str | None,
    config: ScoringConfig = DEFAULT_SCORING,
    *,
    fallback_requirement: str | None = None,
) -> float:
    """Tiered bonus for how much of the required experience the talent has.

    The requirement is read from the job description; *fallback_requirement*
    (the posting's experience field) is consulted when the description
    states none.
    """
    required = parse_required_years(job_description) or parse_required_years(fallback_requirement)
    candidate = parse_candidate_years(experience_years)
    if not required or not candidate:
        return 0.0
    for fraction, bonus in config.experience_tiers:
        if candidate >= required * fraction:
            return bonus
    return 0.0


def role_band(similarity: float, config: ScoringConfig = DEFAULT_SCORING) -> float:
    """Map a profession/role similarity onto the signed bonus table."""
    for lower_bound, bonus in config.role_bands:
        if similarity >= lower_bound:
            return bonus
    return config.role_mismatch_penalty


def role_match(
    profession_vector: Sequence[float] | None,
    role_vector: Sequence[float] | None,
    config: ScoringConfig = DEFAULT_SCORING,
) -> float:
    # No profession or no role on record is neutral, not a mismatch
    if not profession_vector or not role_vector:
        return 0.0
    return role_band(cosine_similarity(profession_vector, role_vector), config)


def aggregate(similarity: float, keyword: float, experience: float, role: float) -> float:
    total = similarity + max(0.0, keyword) + experience + role
    if math.isnan(total):
        return 0.0
    return min(max(total, 0.0), 1.0)
