# pydantic models produced by the scoring engine and the pairing orchestrator
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScoreBreakdown(BaseModel):
    """Per-criterion points behind a compatibility score.

    Fields:
        age, height, mbti, personality, dating_style, lifestyle: Points awarded by
            each criterion. All are None when the pair was excluded outright.
        raw_total: Sum of the criteria before clamping to [0, 100].
        excluded_reason: Why no criterion was computed (e.g. "same_department").
    """

    model_config = ConfigDict(frozen=True)

    age: Optional[int] = None
    height: Optional[int] = None
    mbti: Optional[int] = None
    personality: Optional[int] = None
    dating_style: Optional[int] = None
    lifestyle: Optional[int] = None
    raw_total: int = 0
    excluded_reason: Optional[str] = None

    @property
    def excluded(self) -> bool:
        return self.excluded_reason is not None


class MatchResult(BaseModel):
    """Canonical, immutable record of one committed pair.

    Fields:
        seeker_candidate_id: The seeker whose preferences drove the score.
        other_candidate_id: The candidate taken from the pool.
        score: Clamped compatibility score in [0, 100].
        created_at: When the orchestrator committed the pair.
    """

    model_config = ConfigDict(frozen=True)

    seeker_candidate_id: str
    other_candidate_id: str
    score: int = Field(ge=0, le=100, description="Compatibility score between 0 and 100")
    created_at: datetime


class UnmatchedReason(str, Enum):
    NO_POSITIVE_SCORE = "no_positive_score"
    POOL_EXHAUSTED = "pool_exhausted"
    PERSISTENCE_FAILED = "persistence_failed"


class UnmatchedSeeker(BaseModel):
    model_config = ConfigDict(frozen=True)

    seeker_candidate_id: str
    reason: UnmatchedReason


class RankedCandidate(BaseModel):
    """A pool candidate scored against one seeker, with its original pool position."""

    model_config = ConfigDict(frozen=True)

    candidate_id: str
    display_name: str
    position: int
    score: int
    breakdown: ScoreBreakdown


class MatchingRunSummary(BaseModel):
    """What a matching run hands back to the operator action that triggered it."""

    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    seekers_received: int = 0
    seekers_excluded: int = 0
    candidates_received: int = 0
    candidates_excluded: int = 0
    pairs: List[MatchResult] = Field(default_factory=list)
    unmatched: List[UnmatchedSeeker] = Field(default_factory=list)

    @property
    def unmatched_seeker_ids(self) -> List[str]:
        return [u.seeker_candidate_id for u in self.unmatched]

    @property
    def pair_count(self) -> int:
        return len(self.pairs)
