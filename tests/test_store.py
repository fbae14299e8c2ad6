"""
Tests for store.py - match result persistence.
"""

from datetime import datetime

import pytest

from campusmatch.matcher import PairingOrchestrator
from campusmatch.store import (
    MatchPersistenceError,
    MatchResultRecord,
    MemoryMatchStore,
    SqlMatchStore,
    get_session,
    init_database,
    matched_candidate_ids,
)


COMMITTED_AT = datetime(2026, 3, 2, 21, 30, 0)


@pytest.fixture
def database_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'db' / 'matches.db'}"
    init_database(url)
    return url


@pytest.fixture
def session(database_url):
    session = get_session(database_url)
    yield session
    session.close()


class TestInitDatabase:
    """Schema creation."""

    def test_creates_missing_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "deeper" / "matches.db"
        init_database(f"sqlite:///{db_path}")
        assert db_path.exists()

    def test_is_idempotent(self, database_url):
        init_database(database_url)
        init_database(database_url)


class TestSqlMatchStore:
    """Writes and reads through SQLAlchemy."""

    def test_create_and_list(self, session):
        store = SqlMatchStore(session, run_id="run-1")
        store.create_match_result("s1", "c1", 80)
        store.create_match_result("s2", "c2", 65)

        results = store.list_results()

        assert [(r.seeker_candidate_id, r.other_candidate_id, r.score) for r in results] == [
            ("s1", "c1", 80),
            ("s2", "c2", 65),
        ]
        assert all(r.run_id == "run-1" for r in results)
        assert all(r.created_at is not None for r in results)

    def test_runs_are_kept_apart(self, session):
        SqlMatchStore(session, run_id="run-1").create_match_result("s1", "c1", 80)
        SqlMatchStore(session, run_id="run-2").create_match_result("s1", "c1", 80)

        store = SqlMatchStore(session, run_id="run-2")
        assert len(store.list_results()) == 1
        assert len(store.list_results(run_id="run-1")) == 1

    def test_duplicate_seeker_raises_persistence_error(self, session):
        store = SqlMatchStore(session, run_id="run-1")
        store.create_match_result("s1", "c1", 80)

        with pytest.raises(MatchPersistenceError):
            store.create_match_result("s1", "c2", 70)

        # the session is usable again after the rollback
        store.create_match_result("s2", "c2", 70)
        assert [r.seeker_candidate_id for r in store.list_results()] == ["s1", "s2"]

    def test_created_at_is_stored_as_given(self, session):
        store = SqlMatchStore(session, run_id="run-1")
        store.create_match_result("s1", "c1", 80, created_at=COMMITTED_AT)
        assert store.list_results()[0].created_at == COMMITTED_AT

    def test_matched_ids_span_runs(self, session):
        SqlMatchStore(session, run_id="run-1").create_match_result("s1", "c1", 80)
        SqlMatchStore(session, run_id="run-2").create_match_result("s2", "c2", 70)

        assert matched_candidate_ids(session) == {"s1", "c1", "s2", "c2"}
        assert SqlMatchStore(session, run_id="run-3").matched_candidate_ids() == {"s1", "c1", "s2", "c2"}

    def test_no_matches_yet(self, session):
        assert matched_candidate_ids(session) == set()

    def test_duplicate_other_raises_persistence_error(self, session):
        store = SqlMatchStore(session, run_id="run-1")
        store.create_match_result("s1", "c1", 80)
        with pytest.raises(MatchPersistenceError):
            store.create_match_result("s2", "c1", 70)


class TestMemoryMatchStore:
    """Dry-run store."""

    def test_records_in_order(self):
        store = MemoryMatchStore()
        store.create_match_result("s1", "c1", 80)
        store.create_match_result("s2", "c2", 60)
        assert store.results == [("s1", "c1", 80), ("s2", "c2", 60)]

    def test_configured_failures(self):
        store = MemoryMatchStore(fail_for={"s2"})
        with pytest.raises(MatchPersistenceError):
            store.create_match_result("s2", "c1", 80)
        assert store.results == []

    def test_duplicate_seeker(self):
        store = MemoryMatchStore()
        store.create_match_result("s1", "c1", 80)
        with pytest.raises(MatchPersistenceError):
            store.create_match_result("s1", "c2", 80)

    def test_matched_ids(self):
        store = MemoryMatchStore()
        store.create_match_result("s1", "c1", 80, created_at=COMMITTED_AT)
        assert store.matched_candidate_ids() == {"s1", "c1"}
        assert store.created_at == {"s1": COMMITTED_AT}


class TestRunWithDatabase:
    """A full run committing to SQLite."""

    def test_pairs_are_stored(self, session, seeker_record, candidate_record):
        store = SqlMatchStore(session, run_id="run-db")
        seekers = [seeker_record(candidate_id="s1"), seeker_record(candidate_id="s2")]
        candidates = [candidate_record(candidate_id="c1"), candidate_record(candidate_id="c2", mbti="ISTJ")]

        summary = PairingOrchestrator(store, clock=lambda: COMMITTED_AT).run_matching(
            seekers, candidates, run_id="run-db"
        )

        stored = session.query(MatchResultRecord).filter_by(run_id="run-db").order_by(MatchResultRecord.id).all()
        assert [(r.seeker_candidate_id, r.other_candidate_id, r.score) for r in stored] == [
            ("s1", "c1", 80),
            ("s2", "c2", 60),
        ]
        assert summary.pair_count == 2
        assert [r.created_at for r in stored] == [p.created_at for p in summary.pairs] == [COMMITTED_AT] * 2
