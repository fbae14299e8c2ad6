from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


FIELD_ALIASES: Dict[str, List[str]] = {
    "candidate_id": ["candidate_id", "user_id", "id", "User ID"],
    "display_name": ["display_name", "nickname", "name", "Name"],
    "cohort": ["cohort", "gender", "Gender"],
    "age": ["age", "Age"],
    "department": ["department", "major", "Department"],
    "mbti": ["mbti", "MBTI"],
    "height_cm": ["height_cm", "height", "Height"],
    "personality_traits": ["personality_traits", "personalities", "Personalities"],
    "dating_style_traits": ["dating_style_traits", "dating_styles", "datingStyles", "Dating styles"],
    "smoking": ["smoking", "Smoking"],
    "drinking": ["drinking", "Drinking"],
    "tattoo": ["tattoo", "Tattoo"],
}

PREFERENCE_ALIASES: Dict[str, List[str]] = {
    "candidate_id": ["candidate_id", "user_id", "id", "User ID"],
    "preferred_age_type": ["preferred_age_type", "age_type"],
    "preferred_height_min": ["preferred_height_min", "height_min"],
    "preferred_height_max": ["preferred_height_max", "height_max"],
    "preferred_mbti": ["preferred_mbti", "liked_mbti"],
    "disliked_mbti": ["disliked_mbti"],
    "preferred_personality_traits": ["preferred_personality_traits", "preferred_personalities"],
    "preferred_dating_style_traits": ["preferred_dating_style_traits", "preferred_dating_styles"],
    "preferred_smoking": ["preferred_smoking"],
    "preferred_drinking": ["preferred_drinking"],
    "preferred_tattoo": ["preferred_tattoo"],
}

MULTI_VALUE_FIELDS = {
    "personality_traits",
    "dating_style_traits",
    "preferred_mbti",
    "disliked_mbti",
    "preferred_personality_traits",
    "preferred_dating_style_traits",
}

LIFESTYLE_FLAGS = ("smoking", "drinking", "tattoo")
PREFERENCE_FLAG_KEYS = {f"preferred_{flag}" for flag in LIFESTYLE_FLAGS}

NULL_TOKENS = {"", "nan", "NaN", "None", "NULL", "null"}

_SPLIT_RE = re.compile(r"[,;|]")


def get_alias_column(df: pd.DataFrame, key: str, aliases: Dict[str, List[str]] = FIELD_ALIASES) -> Optional[str]:
    for candidate in aliases.get(key, []):
        if candidate in df.columns:
            return candidate
    return None


def resolve_aliases(df: pd.DataFrame, aliases: Dict[str, List[str]] = FIELD_ALIASES) -> Dict[str, Optional[str]]:
    return {key: get_alias_column(df, key, aliases) for key in aliases}


def split_multi(value: Any) -> Optional[List[str]]:
    """Split "kind, funny|calm" into ["kind", "funny", "calm"]; blanks give None."""
    if value is None:
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    parts = [p.strip() for p in _SPLIT_RE.split(str(value))]
    parts = [p for p in parts if p]
    return parts or None


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip()
        return None if text in NULL_TOKENS else text
    return value


def clean_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Strip headers and cells, turning blank or null-like tokens into None."""
    out = df.copy()
    out.columns = [col.strip() if isinstance(col, str) else col for col in out.columns]
    out = out.astype(object).where(pd.notna(out), None)
    for col in out.columns:
        out[col] = out[col].map(_clean_cell)
    return out


def read_frame(path: Path) -> pd.DataFrame:
    if not Path(path).exists():
        raise FileNotFoundError(f"Input CSV not found: {path}")
    # everything as text; pydantic does the typing later
    df = pd.read_csv(path, dtype=str, keep_default_na=True)
    return clean_frame(df)


def _row_value(row: pd.Series, col: Optional[str]) -> Any:
    if col is None:
        return None
    return row.get(col)


def _candidate_record(row: pd.Series, alias_map: Dict[str, Optional[str]]) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for key in FIELD_ALIASES:
        if key in LIFESTYLE_FLAGS:
            continue
        value = _row_value(row, alias_map.get(key))
        record[key] = split_multi(value) if key in MULTI_VALUE_FIELDS else value
    flags = {flag: _row_value(row, alias_map.get(flag)) for flag in LIFESTYLE_FLAGS}
    # an incomplete flag set is left for validation to reject
    record["lifestyle"] = flags if all(v is not None for v in flags.values()) else None
    return record


def _preference_record(row: pd.Series, alias_map: Dict[str, Optional[str]]) -> Optional[Dict[str, Any]]:
    prefs: Dict[str, Any] = {}
    for key in PREFERENCE_ALIASES:
        if key == "candidate_id" or key in PREFERENCE_FLAG_KEYS:
            continue
        value = _row_value(row, alias_map.get(key))
        prefs[key] = split_multi(value) if key in MULTI_VALUE_FIELDS else value
    flags = {flag: _row_value(row, alias_map.get(f"preferred_{flag}")) for flag in LIFESTYLE_FLAGS}
    prefs["preferred_lifestyle"] = flags if all(v is not None for v in flags.values()) else None
    if all(v is None for v in prefs.values()):
        return None
    return prefs


def records_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a cleaned candidate frame into raw candidate records, preserving row order."""
    alias_map = resolve_aliases(df)
    return [_candidate_record(row, alias_map) for _, row in df.iterrows()]


def load_candidates(csv_path: Path) -> List[Dict[str, Any]]:
    return records_from_frame(read_frame(csv_path))


def load_preferences(csv_path: Path) -> Dict[str, Dict[str, Any]]:
    """Read preference profiles keyed by candidate id. The first row wins on duplicate ids."""
    df = read_frame(csv_path)
    alias_map = resolve_aliases(df, PREFERENCE_ALIASES)
    id_col = alias_map.get("candidate_id")
    if id_col is None:
        raise ValueError(f"No candidate id column found in {csv_path}")
    profiles: Dict[str, Dict[str, Any]] = {}
    for _, row in df.iterrows():
        candidate_id = row.get(id_col)
        prefs = _preference_record(row, alias_map)
        if candidate_id is None or prefs is None or str(candidate_id) in profiles:
            continue
        profiles[str(candidate_id)] = prefs
    return profiles


def attach_preferences(
    candidates: List[Dict[str, Any]], preferences: Dict[str, Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Return seeker records: each candidate with its profile (or None) under "preferences"."""
    seekers = []
    for record in candidates:
        seeker = dict(record)
        candidate_id = record.get("candidate_id")
        seeker["preferences"] = preferences.get(str(candidate_id)) if candidate_id is not None else None
        seekers.append(seeker)
    return seekers


def load_seekers(csv_path: Path, preferences_path: Optional[Path] = None) -> List[Dict[str, Any]]:
    """Load the seeker cohort in file order.

    Preferences come from `preferences_path` when given, otherwise from the
    preferred_* columns of the seeker file itself.
    """
    df = read_frame(csv_path)
    candidates = records_from_frame(df)
    if preferences_path is not None:
        return attach_preferences(candidates, load_preferences(preferences_path))

    alias_map = resolve_aliases(df, PREFERENCE_ALIASES)
    seekers = []
    for record, (_, row) in zip(candidates, df.iterrows()):
        seeker = dict(record)
        seeker["preferences"] = _preference_record(row, alias_map)
        seekers.append(seeker)
    return seekers


def pairs_frame(pairs: List[Any], names: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Tidy DataFrame of committed pairs for CSV export."""
    names = names or {}
    rows = []
    for i, pair in enumerate(pairs, start=1):
        rows.append(
            {
                "pair_index": i,
                "seeker_candidate_id": pair.seeker_candidate_id,
                "seeker_name": names.get(pair.seeker_candidate_id, ""),
                "other_candidate_id": pair.other_candidate_id,
                "other_name": names.get(pair.other_candidate_id, ""),
                "score": pair.score,
                "created_at": pair.created_at.isoformat(),
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "pair_index",
            "seeker_candidate_id",
            "seeker_name",
            "other_candidate_id",
            "other_name",
            "score",
            "created_at",
        ],
    )
