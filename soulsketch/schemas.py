from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

ATTRACTION_PREFERENCES = {"men", "male", "women", "female", "both", "non-binary", "all", "any", "person"}
ADDONS = ("aura", "twin_flame", "past_life")


def _drop_empty(value):
    # None, "" and empty containers are treated as "not answered"
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            v = _drop_empty(v)
            if v is None or v == "" or v == {} or v == []:
                continue
            out[k] = v
        return out
    if isinstance(value, list):
        return [v for v in (_drop_empty(x) for x in value) if v is not None and v != ""]
    return value


class _Section(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserInfo(_Section):
    email: Optional[str] = None
    name: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    age_range: Optional[str] = None
    attracted_to: str = "any"


class BirthInfo(_Section):
    date: Optional[str] = None
    time: Optional[str] = None
    city: Optional[str] = None
    zodiac: Optional[str] = None


class Appearance(_Section):
    face_shape: Optional[str] = None
    hair_length: Optional[str] = None
    hair_texture: Optional[str] = None
    hair_color: Optional[str] = None
    eye_color: Optional[str] = None
    eye_shape: Optional[str] = None
    skin_tone: Optional[str] = None
    facial_hair: Optional[str] = None
    freckles: Optional[str] = None
    apparent_age: Optional[str] = None
    cultural_resonance: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class Personality(_Section):
    introvert_extrovert: int = 50
    grounded_adventurous: int = 50
    analytical_creative: int = 50
    values: List[str] = Field(default_factory=list)
    love_languages: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("introvert_extrovert", "grounded_adventurous", "analytical_creative", mode="before")
    @classmethod
    def _slider(cls, v):
        # sliders are 0..100, anything non-numeric sits in the centre
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 50
        return int(max(0, min(100, v)))

    @field_validator("values", mode="before")
    @classmethod
    def _as_list(cls, v):
        return [str(x) for x in v] if isinstance(v, list) else []


class Relationship(_Section):
    looking_for: Optional[str] = None
    must_haves: List[str] = Field(default_factory=list)
    deal_breakers: Optional[str] = None

    @field_validator("must_haves", mode="before")
    @classmethod
    def _as_list(cls, v):
        return [str(x) for x in v] if isinstance(v, list) else []


class Preferences(_Section):
    aura_palette: Optional[str] = None
    addons: Dict[str, Any] = Field(default_factory=dict)


class QuizAnswers(_Section):
    """Normalised quiz. Every section is optional and every field has a default."""

    user: UserInfo = Field(default_factory=UserInfo)
    birth: BirthInfo = Field(default_factory=BirthInfo)
    appearance: Appearance = Field(default_factory=Appearance)
    personality: Personality = Field(default_factory=Personality)
    relationship: Relationship = Field(default_factory=Relationship)
    preferences: Preferences = Field(default_factory=Preferences)
    style: str = "realistic"

    @model_validator(mode="before")
    @classmethod
    def _clean(cls, data):
        if not isinstance(data, dict):
            return {}
        data = _drop_empty(data)
        interest = data.pop("interest", None)
        if interest:
            user = data.setdefault("user", {})
            if isinstance(user, dict):
                user.setdefault("attractedTo", interest)
        for section in ("user", "birth", "appearance", "personality", "relationship", "preferences"):
            if section in data and not isinstance(data[section], dict):
                data.pop(section)
        return data

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def normalize_quiz(raw: Optional[Dict[str, Any]], email: Optional[str] = None) -> QuizAnswers:
    """Validate raw quiz answers into `QuizAnswers`, filling derived fields.

    The order's email is used as the delivery address when the quiz itself
    carries none; the zodiac sign is derived from the birth date when missing.
    """
    from soulsketch.services import astro

    quiz = QuizAnswers.model_validate(raw or {})
    if not quiz.user.email and email:
        quiz.user.email = email
    if not quiz.birth.zodiac and quiz.birth.date:
        quiz.birth.zodiac = astro.zodiac_for_date(quiz.birth.date)
    return quiz


def normalize_addons(addons) -> List[str]:
    """Set semantics: duplicates collapse, unknown flags drop, canonical order."""
    chosen = {str(a).strip().lower() for a in (addons or [])}
    return [a for a in ADDONS if a in chosen]
