"""
Match result persistence.

Uses SQLAlchemy for the match_results table. Each committed pair is written
and committed on its own so a failure affects only that pair.

Non-Responsibilities:
- No scoring.
- No decisions about which pair to commit.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Set, Tuple

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .logger import get_logger


log = get_logger(__name__)

Base = declarative_base()


class MatchPersistenceError(Exception):
    """Raised when a single committed pair could not be written."""
    pass


class MatchResultRecord(Base):
    """Stored match result."""

    __tablename__ = "match_results"
    __table_args__ = (
        UniqueConstraint("run_id", "seeker_candidate_id", name="uq_match_results_run_seeker"),
        UniqueConstraint("run_id", "other_candidate_id", name="uq_match_results_run_other"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String, nullable=False, index=True)
    seeker_candidate_id = Column(String, nullable=False)
    other_candidate_id = Column(String, nullable=False)
    score = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class MatchResultWriter(Protocol):
    def create_match_result(
        self,
        seeker_candidate_id: str,
        other_candidate_id: str,
        score: int,
        created_at: Optional[datetime] = None,
    ) -> None:
        ...


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.drivername.startswith("sqlite") and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def init_database(database_url: str) -> None:
    """
    Create the match_results table if it does not exist.

    Args:
        database_url: SQLAlchemy database URL
    """
    _ensure_sqlite_dir(database_url)
    engine = create_engine(database_url)
    Base.metadata.create_all(engine)


def get_session(database_url: str) -> Session:
    """
    Get database session.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(database_url)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    return SessionLocal()


def matched_candidate_ids(session: Session) -> Set[str]:
    """Ids on either side of any stored match, across all runs."""
    rows = session.execute(
        select(MatchResultRecord.seeker_candidate_id, MatchResultRecord.other_candidate_id)
    ).all()
    return {candidate_id for row in rows for candidate_id in row}


class SqlMatchStore:
    """Writes match results for one run through a SQLAlchemy session."""

    def __init__(self, session: Session, run_id: str):
        self.session = session
        self.run_id = run_id

    def create_match_result(
        self,
        seeker_candidate_id: str,
        other_candidate_id: str,
        score: int,
        created_at: Optional[datetime] = None,
    ) -> None:
        record = MatchResultRecord(
            run_id=self.run_id,
            seeker_candidate_id=seeker_candidate_id,
            other_candidate_id=other_candidate_id,
            score=score,
            created_at=created_at or datetime.now(),
        )
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as e:
            # duplicate pair in this run; other database errors are fatal and propagate
            self.session.rollback()
            raise MatchPersistenceError(
                f"Could not store match {seeker_candidate_id} -> {other_candidate_id}: {e.orig}"
            ) from e

    def list_results(self, run_id: Optional[str] = None) -> List[MatchResultRecord]:
        stmt = select(MatchResultRecord).where(
            MatchResultRecord.run_id == (run_id or self.run_id)
        ).order_by(MatchResultRecord.id)
        return list(self.session.execute(stmt).scalars().all())

    def matched_candidate_ids(self) -> Set[str]:
        return matched_candidate_ids(self.session)


class MemoryMatchStore:
    """In-process store for dry runs and tests.

    Seeker ids listed in `fail_for` raise MatchPersistenceError instead of
    being stored.
    """

    def __init__(self, fail_for: Optional[Set[str]] = None):
        self.fail_for = set(fail_for or ())
        self.results: List[Tuple[str, str, int]] = []
        self.created_at: Dict[str, datetime] = {}
        self._by_seeker: Dict[str, int] = {}

    def create_match_result(
        self,
        seeker_candidate_id: str,
        other_candidate_id: str,
        score: int,
        created_at: Optional[datetime] = None,
    ) -> None:
        if seeker_candidate_id in self.fail_for:
            raise MatchPersistenceError(f"Simulated write failure for {seeker_candidate_id}")
        if seeker_candidate_id in self._by_seeker:
            raise MatchPersistenceError(f"Seeker {seeker_candidate_id} already has a match")
        self._by_seeker[seeker_candidate_id] = len(self.results)
        self.results.append((seeker_candidate_id, other_candidate_id, score))
        self.created_at[seeker_candidate_id] = created_at or datetime.now()
        log.debug("Stored match %s -> %s (%d) in memory", seeker_candidate_id, other_candidate_id, score)

    def matched_candidate_ids(self) -> Set[str]:
        return {candidate_id for seeker_id, other_id, _ in self.results for candidate_id in (seeker_id, other_id)}
