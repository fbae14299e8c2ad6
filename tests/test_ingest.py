"""
Tests for ingest.py - CSV loading.
"""

import pandas as pd
import pytest

from campusmatch.ingest import (
    load_candidates,
    load_preferences,
    load_seekers,
    pairs_frame,
    split_multi,
)
from campusmatch.matching_models import MatchResult
from campusmatch.validation import build_candidate, build_seeker


CANDIDATES_CSV = """user_id,nickname,gender,age,major,MBTI,height,personalities,dating_styles,smoking,drinking,tattoo
c1,Mina,female,24,Business,enfp,175,kind|funny,active,false,false,false
c2,Jiwoo,female,23,Design,INFJ,168,"calm, kind",homebody;romantic,no,yes,no
c3,Sora,female,,Law,ISTJ,162,shy,online,false,false,false
"""

SEEKERS_CSV = """candidate_id,display_name,cohort,age,department,mbti,height_cm,personality_traits,dating_style_traits,smoking,drinking,tattoo,preferred_age_type,preferred_height_min,preferred_height_max,preferred_mbti,disliked_mbti,preferred_personality_traits,preferred_dating_style_traits,preferred_smoking,preferred_drinking,preferred_tattoo
s1,Joon,male,22,Computer Science,INTJ,180,calm,active,false,true,false,same,170,180,ENFP|INFJ,ISTJ,kind|funny|ambitious,active|homebody,false,true,false
s2,Hyun,male,25,Law,ESTP,177,funny,romantic,false,false,false,,,,,,,,,,
"""

PREFERENCES_CSV = """user_id,age_type,height_min,height_max,liked_mbti,disliked_mbti,preferred_personalities,preferred_dating_styles,preferred_smoking,preferred_drinking,preferred_tattoo
s2,older,160,175,INFJ,,kind,romantic,false,false,false
"""


@pytest.fixture
def candidates_csv(tmp_path):
    path = tmp_path / "candidates.csv"
    path.write_text(CANDIDATES_CSV)
    return path


@pytest.fixture
def seekers_csv(tmp_path):
    path = tmp_path / "seekers.csv"
    path.write_text(SEEKERS_CSV)
    return path


@pytest.fixture
def preferences_csv(tmp_path):
    path = tmp_path / "preferences.csv"
    path.write_text(PREFERENCES_CSV)
    return path


class TestSplitMulti:
    """Multi-value cells."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("kind|funny", ["kind", "funny"]),
            ("calm, kind", ["calm", "kind"]),
            ("a;b|c,d", ["a", "b", "c", "d"]),
            ("solo", ["solo"]),
            (" | ", None),
            (None, None),
            (["x", " ", "y"], ["x", "y"]),
        ],
    )
    def test_split(self, raw, expected):
        assert split_multi(raw) == expected


class TestLoadCandidates:
    """Candidate file with aliased headers."""

    def test_rows_in_file_order(self, candidates_csv):
        records = load_candidates(candidates_csv)
        assert [r["candidate_id"] for r in records] == ["c1", "c2", "c3"]

    def test_aliases_and_splitting(self, candidates_csv):
        record = load_candidates(candidates_csv)[1]
        assert record["display_name"] == "Jiwoo"
        assert record["cohort"] == "female"
        assert record["department"] == "Design"
        assert record["personality_traits"] == ["calm", "kind"]
        assert record["dating_style_traits"] == ["homebody", "romantic"]
        assert record["lifestyle"] == {"smoking": "no", "drinking": "yes", "tattoo": "no"}

    def test_records_validate(self, candidates_csv):
        c1, c2, c3 = [build_candidate(r) for r in load_candidates(candidates_csv)]
        assert c1.mbti == "ENFP"
        assert c1.age == 24
        assert c2.lifestyle.drinking is True
        # blank age
        assert c3 is None

    def test_blank_cell_becomes_none(self, candidates_csv):
        assert load_candidates(candidates_csv)[2]["age"] is None

    def test_missing_flag_column_leaves_lifestyle_unset(self, tmp_path):
        path = tmp_path / "no_tattoo.csv"
        path.write_text("id,name,gender,age,department,mbti,height,personalities,dating_styles,smoking,drinking\n"
                        "c9,Ari,female,21,Art,ENTP,160,kind,active,false,false\n")
        record = load_candidates(path)[0]
        assert record["lifestyle"] is None
        assert build_candidate(record) is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_candidates(tmp_path / "nope.csv")


class TestLoadSeekers:
    """Seekers with inline or separate preference profiles."""

    def test_inline_preferences(self, seekers_csv):
        s1, s2 = load_seekers(seekers_csv)
        assert s1["preferences"]["preferred_mbti"] == ["ENFP", "INFJ"]
        assert s1["preferences"]["preferred_lifestyle"] == {"smoking": "false", "drinking": "true", "tattoo": "false"}
        assert s2["preferences"] is None

        seeker = build_seeker(s1)
        assert seeker is not None
        assert seeker.preferences.preferred_height_min == 170
        assert build_seeker(s2) is None

    def test_separate_preferences_file(self, seekers_csv, preferences_csv):
        s1, s2 = load_seekers(seekers_csv, preferences_path=preferences_csv)
        assert s1["preferences"] is None
        assert s2["preferences"]["preferred_age_type"] == "older"
        assert s2["preferences"]["disliked_mbti"] is None

        seeker = build_seeker(s2)
        assert seeker is not None
        assert seeker.preferences.disliked_mbti == frozenset()

    def test_preferences_need_an_id_column(self, tmp_path):
        path = tmp_path / "prefs.csv"
        path.write_text("age_type,height_min\nsame,160\n")
        with pytest.raises(ValueError):
            load_preferences(path)


class TestPairsFrame:
    """Export of committed pairs."""

    def test_columns_and_names(self):
        from datetime import datetime

        pairs = [
            MatchResult(seeker_candidate_id="s1", other_candidate_id="c1", score=80, created_at=datetime(2026, 3, 2, 21)),
        ]
        df = pairs_frame(pairs, names={"s1": "Joon", "c1": "Mina"})
        assert list(df.columns) == [
            "pair_index",
            "seeker_candidate_id",
            "seeker_name",
            "other_candidate_id",
            "other_name",
            "score",
            "created_at",
        ]
        assert df.iloc[0]["seeker_name"] == "Joon"
        assert df.iloc[0]["created_at"] == "2026-03-02T21:00:00"

    def test_empty(self):
        df = pairs_frame([])
        assert isinstance(df, pd.DataFrame)
        assert df.empty
