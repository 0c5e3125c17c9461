from __future__ import annotations
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .answers import normalize_answer

# Recorded in place of user input when a question is skipped or times out
TIMEOUT_ANSWER = "Timeout"

MAX_OPTIONS = 5


class QuestionType(str, Enum):
    SIMPLIFICATION = "Simplification"
    SERIES = "Number Series"
    QUADRATIC = "Quadratic Equations"
    APPROXIMATION = "Approximation"

    @property
    def key(self) -> str:
        return _TYPE_KEYS[self]

    @classmethod
    def _missing_(cls, value: object) -> Optional["QuestionType"]:
        # Accept the short type key ("series") or any casing of the label
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if wanted in (member.key, member.value.lower()):
                    return member
        return None


_TYPE_KEYS = {
    QuestionType.SIMPLIFICATION: "simplification",
    QuestionType.SERIES: "series",
    QuestionType.QUADRATIC: "quadratic",
    QuestionType.APPROXIMATION: "approximation",
}

QUESTION_TYPE_KEYS: List[str] = list(_TYPE_KEYS.values())


class AppView(str, Enum):
    LOGIN = "login"
    DASHBOARD = "dashboard"
    DRILL = "drill"
    ANALYSIS = "analysis"


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Record(CamelModel):
    model_config = ConfigDict(frozen=True)


class Question(_Record):
    id: str = Field(min_length=1)
    type: str
    question_text: str = Field(min_length=1)
    correct_answer: str = Field(min_length=1)
    explanation: str = ""
    options: Optional[Tuple[str, ...]] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "Question":
        if self.type not in QUESTION_TYPE_KEYS:
            raise ValueError(f"type must be one of {QUESTION_TYPE_KEYS}")
        if not normalize_answer(self.correct_answer):
            raise ValueError("correctAnswer is blank")
        if self.options is not None:
            if len(self.options) > MAX_OPTIONS:
                raise ValueError(f"at most {MAX_OPTIONS} options allowed")
            wanted = normalize_answer(self.correct_answer)
            if not any(normalize_answer(o) == wanted for o in self.options):
                raise ValueError("options do not include the correct answer")
        return self


class DetailEntry(_Record):
    question_id: str
    is_correct: bool
    user_answer: str
    correct_answer: str
    time_spent: float


class DrillResult(_Record):
    id: str
    date: str
    topic: QuestionType
    score: float = Field(ge=0, le=100)
    total_questions: int
    time_taken: float
    accuracy: float
    max_streak: int
    details: Tuple[DetailEntry, ...]


class User(_Record):
    name: str
    history: Tuple[DrillResult, ...] = ()
