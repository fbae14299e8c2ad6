from enum import Enum
from typing import Any, FrozenSet, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AgePreference(str, Enum):
    """How a seeker wants a partner's age to relate to their own."""

    SAME = "same"
    OLDER = "older"
    YOUNGER = "younger"
    ANY = "any"


def _clean_labels(value: Any, upper: bool = False) -> Any:
    """Strip labels and drop blanks so an all-blank collection fails min_length."""
    if value is None or isinstance(value, str):
        return value
    if not isinstance(value, Iterable):
        return value
    labels = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            labels.append(text.upper() if upper else text)
    return frozenset(labels)


class LifestyleFlags(BaseModel):
    """Smoking, drinking and tattoo flags. All three are required."""

    model_config = ConfigDict(frozen=True)

    smoking: bool
    drinking: bool
    tattoo: bool


class Candidate(BaseModel):
    """
    A profile eligible to be matched in a run.

    Any missing or empty field makes the record invalid, which the orchestrator
    treats as "excluded from the run" rather than as an error.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    candidate_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    cohort: str = Field(min_length=1)
    age: int = Field(gt=0)
    department: str = Field(min_length=1)
    mbti: str = Field(min_length=1)
    height_cm: float = Field(gt=0, allow_inf_nan=False)
    personality_traits: FrozenSet[str] = Field(min_length=1)
    dating_style_traits: FrozenSet[str] = Field(min_length=1)
    lifestyle: LifestyleFlags

    @field_validator("candidate_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # ids read from CSV may arrive as ints
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("age", "height_cm", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value

    @field_validator("mbti")
    @classmethod
    def _upper_mbti(cls, value: str) -> str:
        return value.upper()

    @field_validator("personality_traits", "dating_style_traits", mode="before")
    @classmethod
    def _clean_traits(cls, value: Any) -> Any:
        return _clean_labels(value)


class PreferenceProfile(BaseModel):
    """
    What a seeker is looking for. Only the seeker cohort carries one.

    `disliked_mbti` is the only collection allowed to be empty.
    """

    model_config = ConfigDict(frozen=True)

    preferred_age_type: AgePreference
    preferred_height_min: float = Field(ge=0, allow_inf_nan=False)
    preferred_height_max: float = Field(ge=0, allow_inf_nan=False)
    preferred_mbti: FrozenSet[str] = Field(min_length=1)
    disliked_mbti: FrozenSet[str] = Field(default_factory=frozenset)
    preferred_personality_traits: FrozenSet[str] = Field(min_length=1)
    preferred_dating_style_traits: FrozenSet[str] = Field(min_length=1)
    preferred_lifestyle: LifestyleFlags

    @field_validator("preferred_age_type", mode="before")
    @classmethod
    def _lower_age_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("preferred_mbti", "disliked_mbti", mode="before")
    @classmethod
    def _clean_mbti(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        return _clean_labels(value, upper=True)

    @field_validator("preferred_personality_traits", "preferred_dating_style_traits", mode="before")
    @classmethod
    def _clean_traits(cls, value: Any) -> Any:
        return _clean_labels(value)

    @model_validator(mode="after")
    def _check_height_range(self) -> "PreferenceProfile":
        if self.preferred_height_min > self.preferred_height_max:
            raise ValueError("preferred_height_min must not exceed preferred_height_max")
        return self


class Seeker(BaseModel):
    """A candidate from the seeker cohort together with its preference profile."""

    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    preferences: PreferenceProfile

    @property
    def candidate_id(self) -> str:
        return self.candidate.candidate_id

    @property
    def cohort(self) -> str:
        return self.candidate.cohort
