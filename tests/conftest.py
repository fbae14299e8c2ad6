"""
Pytest configuration and shared fixtures.
"""

from typing import Any, Callable, Dict

import pytest

from campusmatch.data_models import Candidate, Seeker
from campusmatch.logger import reset_logging
from campusmatch.validation import build_candidate, build_seeker


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo handlers the CLI installs so caplog keeps working across tests."""
    yield
    reset_logging()


def _candidate_record(**overrides: Any) -> Dict[str, Any]:
    record = {
        "candidate_id": "c1",
        "display_name": "Candidate One",
        "cohort": "female",
        "age": 24,
        "department": "Business",
        "mbti": "ENFP",
        "height_cm": 175,
        "personality_traits": ["kind", "funny"],
        "dating_style_traits": ["active"],
        "lifestyle": {"smoking": False, "drinking": False, "tattoo": False},
    }
    record.update(overrides)
    return record


def _preferences(**overrides: Any) -> Dict[str, Any]:
    prefs = {
        "preferred_age_type": "same",
        "preferred_height_min": 170,
        "preferred_height_max": 180,
        "preferred_mbti": ["ENFP", "INFJ"],
        "disliked_mbti": ["ISTJ"],
        "preferred_personality_traits": ["kind", "funny", "ambitious"],
        "preferred_dating_style_traits": ["active", "homebody"],
        "preferred_lifestyle": {"smoking": False, "drinking": True, "tattoo": False},
    }
    prefs.update(overrides)
    return prefs


def _seeker_record(preferences: Dict[str, Any] = None, **overrides: Any) -> Dict[str, Any]:
    record = _candidate_record(
        candidate_id="s1",
        display_name="Seeker One",
        cohort="male",
        age=22,
        department="Computer Science",
        mbti="INTJ",
        height_cm=180,
    )
    record.update(overrides)
    record["preferences"] = _preferences(**(preferences or {}))
    return record


@pytest.fixture
def candidate_record() -> Callable[..., Dict[str, Any]]:
    """Factory for raw candidate records (pool cohort)."""
    return _candidate_record


@pytest.fixture
def seeker_record() -> Callable[..., Dict[str, Any]]:
    """Factory for raw seeker records with a preference profile."""
    return _seeker_record


@pytest.fixture
def preferences() -> Callable[..., Dict[str, Any]]:
    """Factory for raw preference profiles."""
    return _preferences


@pytest.fixture
def worked_seeker() -> Seeker:
    """Seeker from the documented worked example."""
    seeker = build_seeker(_seeker_record())
    assert seeker is not None
    return seeker


@pytest.fixture
def worked_candidate() -> Candidate:
    """Candidate from the documented worked example (scores 80)."""
    candidate = build_candidate(_candidate_record())
    assert candidate is not None
    return candidate
