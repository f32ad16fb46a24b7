from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from django.conf import settings


EXPERIENCE_BANDS = {
    "beginner": (0, 2),
    "intermediate": (2, 5),
    "advanced": (5, None),
}
UNKNOWN_LEVEL_SCORE = 50
PARTIAL_MATCH_CREDIT = 0.5


@dataclass(frozen=True)
class MatchWeights:
    skill: float = 0.4
    focus: float = 0.3
    experience: float = 0.2
    rating: float = 0.1

    @classmethod
    def from_settings(cls) -> "MatchWeights":
        configured = getattr(settings, "MENTOR_MATCH_WEIGHTS", None) or {}
        return cls(**{key: float(value) for key, value in configured.items()})


@dataclass
class ScoredMentor:
    mentor: object
    match_score: int
    available_capacity: int
    rating: float
    total_mentees: int


def _normalize(values: Optional[Iterable[str]]) -> List[str]:
    return [str(value).strip().lower() for value in (values or []) if str(value).strip()]


def _best_match_credit(wanted: str, offered: List[str]) -> float:
    if wanted in offered:
        return 1.0
    for candidate in offered:
        if candidate in wanted or wanted in candidate:
            return PARTIAL_MATCH_CREDIT
    return 0.0


def calculate_skill_match(mentor_skills, mentee_skills) -> float:
    """Percentage (0-100) of mentee skills covered by the mentor's expertise.

    An exact case-insensitive match counts 1, substring containment in either
    direction counts 0.5.
    """
    offered = _normalize(mentor_skills)
    wanted = _normalize(mentee_skills)
    if not offered or not wanted:
        return 0
    matches = sum(_best_match_credit(skill, offered) for skill in wanted)
    return min(100, (matches / len(wanted)) * 100)


def calculate_focus_area_match(mentor_expertise, focus_areas) -> float:
    return calculate_skill_match(mentor_expertise, focus_areas)


def calculate_experience_match(mentor_years, mentee_level) -> int:
    band = EXPERIENCE_BANDS.get(mentee_level)
    if band is None:
        return UNKNOWN_LEVEL_SCORE
    band_min, band_max = band
    years = float(mentor_years or 0)
    if band_max is None:
        # Open-ended band: the ideal mentor is two years past its floor.
        if years >= band_min + 2:
            return 100
    elif years >= band_max + 2:
        return 100
    elif years >= band_max:
        return 80
    if years >= band_min:
        return 60
    return 20


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_match_score(
    *,
    expertise_areas,
    years_experience,
    rating,
    skills,
    experience_level,
    focus_areas,
    weights: Optional[MatchWeights] = None,
) -> int:
    weights = weights or MatchWeights()
    rating_value = float(rating or 0)

    score = 0.0
    score += calculate_skill_match(expertise_areas, skills) * weights.skill
    score += calculate_focus_area_match(expertise_areas, focus_areas) * weights.focus
    score += calculate_experience_match(years_experience, experience_level) * weights.experience
    score += (rating_value / 5) * 100 * weights.rating
    return _round_half_up(score)


def rank_matches(matches: Iterable[ScoredMentor], limit: int = 10) -> List[ScoredMentor]:
    ranked = [match for match in matches if match.match_score > 0]
    ranked.sort(key=lambda match: (match.match_score, match.rating), reverse=True)
    return ranked[:limit]
