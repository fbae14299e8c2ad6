"""
Compatibility scoring between a seeker and one pool candidate.

Six criteria (age, height, MBTI, personality, dating style, lifestyle) are scored
from the seeker's preference profile only and summed. The raw maximum is 115, so
the total is clamped to [0, 100]. A shared department short-circuits everything
to 0.

Scoring is deterministic and side-effect free: the same pair always yields the
same total and breakdown.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Tuple

from .data_models import AgePreference, Candidate, LifestyleFlags, Seeker
from .matching_models import ScoreBreakdown


SAME_DEPARTMENT = "same_department"

MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class ScoreWeights:
    w_age: int = 35
    w_height: int = 20
    w_mbti_liked: int = 20
    w_mbti_neutral: int = 10
    w_personality: int = 15
    w_dating_style: int = 10
    w_lifestyle_flag: int = 5

    # age curves
    same_age_base: int = 25
    same_age_step: int = 5
    directional_age_step: int = 3
    any_age_base: int = 25
    any_age_step: int = 2

    @property
    def raw_maximum(self) -> int:
        return (
            self.w_age
            + self.w_height
            + self.w_mbti_liked
            + self.w_personality
            + self.w_dating_style
            + 3 * self.w_lifestyle_flag
        )


def _round_half_up_ratio(numerator: int, denominator: int, scale: int) -> int:
    # exact integer rounding of numerator/denominator*scale, halves go up
    return (2 * numerator * scale + denominator) // (2 * denominator)


def _age_points(seeker_age: int, candidate_age: int, age_type: AgePreference, weights: ScoreWeights) -> int:
    diff = abs(candidate_age - seeker_age)
    if age_type == AgePreference.SAME:
        if diff == 0:
            return weights.w_age
        return max(0, weights.same_age_base - weights.same_age_step * diff)
    if age_type == AgePreference.OLDER:
        if candidate_age > seeker_age:
            return max(0, weights.w_age - weights.directional_age_step * diff)
        return 0
    if age_type == AgePreference.YOUNGER:
        if candidate_age < seeker_age:
            return max(0, weights.w_age - weights.directional_age_step * diff)
        return 0
    return max(0, weights.any_age_base - weights.any_age_step * diff)


def _height_points(height_cm: float, low: float, high: float, weights: ScoreWeights) -> int:
    return weights.w_height if low <= height_cm <= high else 0


def _mbti_points(mbti: str, liked: FrozenSet[str], disliked: FrozenSet[str], weights: ScoreWeights) -> int:
    if mbti in liked:
        return weights.w_mbti_liked
    if mbti not in disliked:
        return weights.w_mbti_neutral
    return 0


def _overlap_points(traits: FrozenSet[str], preferred: FrozenSet[str], scale: int) -> int:
    return _round_half_up_ratio(len(traits & preferred), len(preferred), scale)


def _lifestyle_points(candidate: LifestyleFlags, preferred: LifestyleFlags, weights: ScoreWeights) -> int:
    points = 0
    for flag in ("smoking", "drinking", "tattoo"):
        if getattr(candidate, flag) == getattr(preferred, flag):
            points += weights.w_lifestyle_flag
    return points


def clamp_score(raw: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, raw))


def score_pair(seeker: Seeker, candidate: Candidate, weights: ScoreWeights) -> Tuple[int, ScoreBreakdown]:
    """Score `candidate` against `seeker`'s preferences.

    Returns:
        (total, breakdown) where total is clamped to [0, 100].
    """
    me = seeker.candidate
    prefs = seeker.preferences

    if me.department == candidate.department:
        return 0, ScoreBreakdown(excluded_reason=SAME_DEPARTMENT)

    age = _age_points(me.age, candidate.age, prefs.preferred_age_type, weights)
    height = _height_points(
        candidate.height_cm, prefs.preferred_height_min, prefs.preferred_height_max, weights
    )
    mbti = _mbti_points(candidate.mbti, prefs.preferred_mbti, prefs.disliked_mbti, weights)
    personality = _overlap_points(
        candidate.personality_traits, prefs.preferred_personality_traits, weights.w_personality
    )
    dating_style = _overlap_points(
        candidate.dating_style_traits, prefs.preferred_dating_style_traits, weights.w_dating_style
    )
    lifestyle = _lifestyle_points(candidate.lifestyle, prefs.preferred_lifestyle, weights)

    raw = age + height + mbti + personality + dating_style + lifestyle
    breakdown = ScoreBreakdown(
        age=age,
        height=height,
        mbti=mbti,
        personality=personality,
        dating_style=dating_style,
        lifestyle=lifestyle,
        raw_total=raw,
    )
    return clamp_score(raw), breakdown


class ScoringEngine:
    """Thin holder for a weight set so callers can pass scoring around as one object."""

    def __init__(self, weights: ScoreWeights | None = None):
        self.weights = weights or ScoreWeights()

    def score(self, seeker: Seeker, candidate: Candidate) -> Tuple[int, ScoreBreakdown]:
        return score_pair(seeker, candidate, self.weights)
