"""
This is the orchestrator for an operator-triggered matching run.
It will be responsible for:

- Dropping incomplete seeker and candidate records before anything is scored
- Looping through the seekers in the order the caller supplied them to:
    - Score the seeker against every candidate still in the pool
    - Choose the best candidate (highest score, earliest pool position on ties)
    - Persist the pair immediately
    - Remove the chosen candidate from the pool
- Recording every seeker that could not be paired, with the reason

The loop is greedy and single-pass: an earlier seeker may take a candidate a
later seeker would have scored higher with. There is no backtracking.
"""
from datetime import datetime
from typing import AbstractSet, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import shortuuid

from .config import WriteFailurePolicy
from .data_models import Candidate, Seeker
from .logger import get_logger
from .matching_models import (
    MatchingRunSummary,
    MatchResult,
    RankedCandidate,
    UnmatchedReason,
    UnmatchedSeeker,
)
from .scoring import ScoringEngine
from .store import MatchPersistenceError, MatchResultWriter
from .validation import (
    CandidateInput,
    SeekerInput,
    build_seeker,
    drop_matched_seekers,
    filter_pool,
    partition_candidates,
    partition_seekers,
)


log = get_logger(__name__)

ProgressFn = Callable[[int, int, str, str, int], None]


class CandidatePool:
    """The shrinking set of candidates still available in one run.

    Candidates keep the position they had in the input list; iteration always
    follows that order so ties resolve the same way on every run.
    """

    def __init__(self, candidates: Sequence[Candidate]):
        self._members: Dict[str, Tuple[int, Candidate]] = {}
        self._removed: Dict[str, Tuple[int, Candidate]] = {}
        for position, candidate in enumerate(candidates):
            self._members[candidate.candidate_id] = (position, candidate)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, candidate_id: str) -> bool:
        return candidate_id in self._members

    def __iter__(self) -> Iterator[Tuple[int, Candidate]]:
        return iter(sorted(self._members.values(), key=lambda item: item[0]))

    def is_empty(self) -> bool:
        return not self._members

    def remove(self, candidate_id: str) -> None:
        self._removed[candidate_id] = self._members.pop(candidate_id)

    def restore(self, candidate_id: str) -> None:
        """Put a removed candidate back at its original position."""
        self._members[candidate_id] = self._removed.pop(candidate_id)

    def ids(self) -> List[str]:
        return [c.candidate_id for _, c in self]


def rank_pool(seeker: Seeker, pool: CandidatePool, engine: ScoringEngine) -> List[RankedCandidate]:
    """Score `seeker` against every pooled candidate, best first.

    Ties keep the earlier pool position first (stable sort on position order).
    """
    ranked = []
    for position, candidate in pool:
        score, breakdown = engine.score(seeker, candidate)
        ranked.append(
            RankedCandidate(
                candidate_id=candidate.candidate_id,
                display_name=candidate.display_name,
                position=position,
                score=score,
                breakdown=breakdown,
            )
        )
    ranked.sort(key=lambda r: r.score, reverse=True)
    return ranked


class PairingOrchestrator:
    """Runs the greedy one-to-one pairing between a seeker cohort and a candidate pool."""

    def __init__(
        self,
        store: MatchResultWriter,
        engine: Optional[ScoringEngine] = None,
        write_failure_policy: WriteFailurePolicy = WriteFailurePolicy.RELEASE,
        progress_fn: Optional[ProgressFn] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.engine = engine or ScoringEngine()
        self.write_failure_policy = WriteFailurePolicy(write_failure_policy)
        self.progress_fn = progress_fn
        self.clock = clock

    def _prepare(
        self,
        seekers: Sequence[SeekerInput],
        candidates: Sequence[CandidateInput],
        already_matched: Optional[AbstractSet[str]] = None,
    ) -> Tuple[List[Seeker], List[Candidate], int, int]:
        valid_seekers, seeker_report = partition_seekers(seekers)
        valid_candidates, candidate_report = partition_candidates(candidates)
        valid_seekers, matched_seekers = drop_matched_seekers(valid_seekers, already_matched)
        pool_candidates, dropped = filter_pool(valid_seekers, valid_candidates, already_matched)
        return (
            valid_seekers,
            pool_candidates,
            seeker_report.excluded + len(matched_seekers),
            candidate_report.excluded + len(dropped),
        )

    def _notify(self, done: int, total: int, seeker_id: str, candidate_id: str, score: int) -> None:
        if self.progress_fn is None:
            return
        try:
            self.progress_fn(done, total, seeker_id, candidate_id, score)
        except Exception:
            # progress errors never reach the caller
            log.debug("Progress callback failed", exc_info=True)

    def run_matching(
        self,
        seekers: Sequence[SeekerInput],
        candidates: Sequence[CandidateInput],
        run_id: Optional[str] = None,
        already_matched: Optional[AbstractSet[str]] = None,
    ) -> MatchingRunSummary:
        """Run the full greedy matching loop.

        Args:
            seekers: Seeker records (or Seeker models) in the order they should be
                served. The order is significant and is never changed.
            candidates: Pool records (or Candidate models); their order decides ties.
            run_id: Identifier stored with the summary; generated when omitted.
            already_matched: Candidate ids holding a stored match from an earlier run.
                They are dropped from both sides and counted as excluded.

        Returns:
            MatchingRunSummary with committed pairs and unmatched seekers.
        """
        summary = MatchingRunSummary(
            run_id=run_id or shortuuid.uuid(),
            started_at=self.clock(),
            seekers_received=len(seekers),
            candidates_received=len(candidates),
        )
        valid_seekers, pool_candidates, seekers_excluded, candidates_excluded = self._prepare(
            seekers, candidates, already_matched
        )
        summary.seekers_excluded = seekers_excluded
        summary.candidates_excluded = candidates_excluded

        pool = CandidatePool(pool_candidates)
        total_pairs = min(len(valid_seekers), len(pool))
        log.info(
            "Matching run %s: %d seekers, %d candidates (%d seekers and %d candidates excluded)",
            summary.run_id, len(valid_seekers), len(pool), seekers_excluded, candidates_excluded,
        )

        for seeker in valid_seekers:
            if pool.is_empty():
                summary.unmatched.append(
                    UnmatchedSeeker(seeker_candidate_id=seeker.candidate_id, reason=UnmatchedReason.POOL_EXHAUSTED)
                )
                continue

            ranked = rank_pool(seeker, pool, self.engine)
            best = ranked[0]
            if best.score <= 0:
                summary.unmatched.append(
                    UnmatchedSeeker(seeker_candidate_id=seeker.candidate_id, reason=UnmatchedReason.NO_POSITIVE_SCORE)
                )
                continue

            result = MatchResult(
                seeker_candidate_id=seeker.candidate_id,
                other_candidate_id=best.candidate_id,
                score=best.score,
                created_at=self.clock(),
            )
            # the candidate leaves the pool before the write is attempted
            pool.remove(best.candidate_id)
            try:
                self.store.create_match_result(
                    result.seeker_candidate_id, result.other_candidate_id, result.score, created_at=result.created_at
                )
            except MatchPersistenceError as e:
                log.warning(
                    "Could not persist match %s -> %s: %s",
                    result.seeker_candidate_id, result.other_candidate_id, e,
                )
                if self.write_failure_policy == WriteFailurePolicy.RELEASE:
                    pool.restore(best.candidate_id)
                summary.unmatched.append(
                    UnmatchedSeeker(seeker_candidate_id=seeker.candidate_id, reason=UnmatchedReason.PERSISTENCE_FAILED)
                )
                continue

            summary.pairs.append(result)
            log.debug("Matched %s -> %s (score=%d)", result.seeker_candidate_id, result.other_candidate_id, result.score)
            self._notify(len(summary.pairs), total_pairs, result.seeker_candidate_id, result.other_candidate_id, result.score)

        summary.finished_at = self.clock()
        log.info(
            "Matching run %s finished: %d pairs, %d seekers unmatched",
            summary.run_id, summary.pair_count, len(summary.unmatched),
        )
        return summary

    def rank_candidates(self, seeker: SeekerInput, candidates: Sequence[CandidateInput]) -> List[RankedCandidate]:
        """Rank the valid, opposite-cohort candidates for one seeker without committing anything."""
        valid_seeker = build_seeker(seeker)
        if valid_seeker is None:
            raise ValueError("Seeker record is incomplete and would be excluded from a run")
        _, pool_candidates, _, _ = self._prepare([valid_seeker], candidates)
        return rank_pool(valid_seeker, CandidatePool(pool_candidates), self.engine)

    def simulate(
        self, seeker: SeekerInput, candidates: Sequence[CandidateInput], top_k: int = 10
    ) -> Tuple[Optional[RankedCandidate], List[RankedCandidate]]:
        """Preview who `seeker` would be paired with against a full pool.

        Returns:
            (selected, potential_partners) where selected is None when no
            candidate scores above zero.
        """
        ranked = self.rank_candidates(seeker, candidates)
        selected = ranked[0] if ranked and ranked[0].score > 0 else None
        return selected, ranked[:top_k]
