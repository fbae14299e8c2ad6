"""
Completeness checks that decide which records may enter a matching run.

Incomplete records are not errors: they are dropped before scoring and only
show up as excluded counts. `*_errors` functions return a list of messages
(empty list means valid) for operator-facing reports.
"""
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from .data_models import Candidate, PreferenceProfile, Seeker
from .logger import get_logger


log = get_logger(__name__)

CandidateInput = Union[Candidate, Mapping[str, Any]]
SeekerInput = Union[Seeker, Mapping[str, Any]]


def _format_errors(prefix: str, exc: ValidationError) -> List[str]:
    messages: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        where = f"{prefix}{loc}" if loc else prefix.rstrip(".") or "record"
        messages.append(f"{where}: {err.get('msg', 'invalid value')}")
    return messages


def _candidate_fields(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k != "preferences"}


def _record_id(record: Any) -> str:
    if isinstance(record, Seeker):
        return record.candidate_id
    if isinstance(record, Candidate):
        return record.candidate_id
    if isinstance(record, Mapping):
        return str(record.get("candidate_id") or "<missing id>")
    return "<unknown>"


def candidate_errors(record: Mapping[str, Any]) -> List[str]:
    try:
        Candidate.model_validate(_candidate_fields(record))
    except ValidationError as e:
        return _format_errors("", e)
    return []


def seeker_errors(record: Mapping[str, Any]) -> List[str]:
    errors = candidate_errors(record)
    prefs = record.get("preferences")
    if prefs is None:
        errors.append("preferences: missing preference profile")
        return errors
    try:
        PreferenceProfile.model_validate(prefs)
    except ValidationError as e:
        errors.extend(_format_errors("preferences.", e))
    return errors


def build_candidate(record: CandidateInput) -> Optional[Candidate]:
    if isinstance(record, Candidate):
        return record
    try:
        return Candidate.model_validate(_candidate_fields(record))
    except ValidationError:
        return None


def build_seeker(record: SeekerInput) -> Optional[Seeker]:
    if isinstance(record, Seeker):
        return record
    prefs = record.get("preferences")
    if prefs is None:
        return None
    try:
        return Seeker(
            candidate=Candidate.model_validate(_candidate_fields(record)),
            preferences=PreferenceProfile.model_validate(prefs),
        )
    except ValidationError:
        return None


@dataclass
class ExclusionReport:
    """How many records a partition step received and which ones it dropped."""

    received: int = 0
    excluded_ids: List[str] = field(default_factory=list)
    duplicate_ids: List[str] = field(default_factory=list)

    @property
    def excluded(self) -> int:
        return len(self.excluded_ids) + len(self.duplicate_ids)

    @property
    def accepted(self) -> int:
        return self.received - self.excluded


def partition_candidates(records: Sequence[CandidateInput]) -> Tuple[List[Candidate], ExclusionReport]:
    """Keep valid candidates in input order; the first occurrence of an id wins."""
    report = ExclusionReport(received=len(records))
    valid: List[Candidate] = []
    seen = set()
    for record in records:
        candidate = build_candidate(record)
        if candidate is None:
            report.excluded_ids.append(_record_id(record))
            continue
        if candidate.candidate_id in seen:
            report.duplicate_ids.append(candidate.candidate_id)
            continue
        seen.add(candidate.candidate_id)
        valid.append(candidate)
    if report.excluded:
        log.debug("Excluded %d of %d candidate records", report.excluded, report.received)
    return valid, report


WRONG_SIDE = "shares a cohort or id with the seekers"
ALREADY_MATCHED = "already matched in an earlier run"


def filter_pool(
    seekers: Sequence[Seeker],
    candidates: Sequence[Candidate],
    already_matched: Optional[AbstractSet[str]] = None,
) -> Tuple[List[Candidate], Dict[str, str]]:
    """Keep candidates from the other cohort that are not seekers and not already matched.

    Returns:
        (pool, dropped) where dropped maps candidate id to the reason it left the pool.
    """
    already_matched = already_matched or frozenset()
    seeker_cohorts = {s.cohort for s in seekers}
    seeker_ids = {s.candidate_id for s in seekers}
    pool: List[Candidate] = []
    dropped: Dict[str, str] = {}
    for candidate in candidates:
        if candidate.candidate_id in already_matched:
            dropped[candidate.candidate_id] = ALREADY_MATCHED
        elif candidate.cohort in seeker_cohorts or candidate.candidate_id in seeker_ids:
            dropped[candidate.candidate_id] = WRONG_SIDE
        else:
            pool.append(candidate)
            continue
        log.debug("Dropping candidate %s: %s", candidate.candidate_id, dropped[candidate.candidate_id])
    return pool, dropped


def drop_matched_seekers(
    seekers: Sequence[Seeker], already_matched: Optional[AbstractSet[str]] = None
) -> Tuple[List[Seeker], List[str]]:
    """Split off seekers who already have a stored match."""
    if not already_matched:
        return list(seekers), []
    kept = [s for s in seekers if s.candidate_id not in already_matched]
    dropped = [s.candidate_id for s in seekers if s.candidate_id in already_matched]
    return kept, dropped


def partition_seekers(records: Sequence[SeekerInput]) -> Tuple[List[Seeker], ExclusionReport]:
    """Keep valid seekers in the caller's order; the first occurrence of an id wins."""
    report = ExclusionReport(received=len(records))
    valid: List[Seeker] = []
    seen = set()
    for record in records:
        seeker = build_seeker(record)
        if seeker is None:
            report.excluded_ids.append(_record_id(record))
            continue
        if seeker.candidate_id in seen:
            report.duplicate_ids.append(seeker.candidate_id)
            continue
        seen.add(seeker.candidate_id)
        valid.append(seeker)
    if report.excluded:
        log.debug("Excluded %d of %d seeker records", report.excluded, report.received)
    return valid, report
