"""
Drill state machine.

A drill moves ``LOADING -> ACTIVE(0) -> ... -> ACTIVE(n-1) -> FINISHED``.
Each question ends with exactly one terminal event (submit, skip or
countdown expiry), which appends one DetailEntry to the buffer and either
advances to the next index or finalizes the drill. Every transition is a
pure function returning a new DrillState; callers pass the current clock
reading in seconds so the machine never reads time itself.
"""

from __future__ import annotations
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from .answers import is_correct
from .models import TIMEOUT_ANSWER, DetailEntry, DrillResult, Question, QuestionType


class DrillPhase(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class DrillState:
    topic: QuestionType
    time_budget: Optional[int]  # seconds per question; None for the untimed variant
    phase: DrillPhase = DrillPhase.LOADING
    questions: Tuple[Question, ...] = ()
    index: int = 0
    details: Tuple[DetailEntry, ...] = ()
    streak: int = 0
    max_streak: int = 0
    started_at: float = 0.0
    question_started_at: float = 0.0
    remaining: Optional[int] = None
    result: Optional[DrillResult] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase is not DrillPhase.ACTIVE:
            return None
        return self.questions[self.index]

    @property
    def is_last(self) -> bool:
        return self.index == len(self.questions) - 1


def new_drill(topic: QuestionType, *, time_budget: Optional[int] = 30) -> DrillState:
    return DrillState(topic=topic, time_budget=time_budget)


def begin(state: DrillState, questions: Sequence[Question], now: float) -> DrillState:
    if state.phase is not DrillPhase.LOADING:
        raise ValueError("Drill already started")
    if not questions:
        raise ValueError("Cannot start a drill without questions")
    return replace(
        state,
        phase=DrillPhase.ACTIVE,
        questions=tuple(questions),
        index=0,
        started_at=now,
        question_started_at=now,
        remaining=state.time_budget,
    )


def _require_active(state: DrillState) -> Question:
    question = state.current_question
    if question is None:
        raise ValueError("No active question")
    return question


def submit(state: DrillState, user_answer: Optional[str], now: float) -> DrillState:
    """Answer the active question. A blank answer leaves the state untouched."""
    question = _require_active(state)
    if not user_answer or not user_answer.strip():
        return state
    return _record(state, user_answer, is_correct(user_answer, question.correct_answer), now)


def skip(state: DrillState, now: float) -> DrillState:
    _require_active(state)
    return _record(state, TIMEOUT_ANSWER, False, now)


def expire(state: DrillState, now: float) -> DrillState:
    # Same path as skip; any half-typed input is never evaluated
    return skip(state, now)


def tick(state: DrillState, now: float) -> DrillState:
    """Advance the countdown by one second, expiring the question at zero."""
    if state.phase is not DrillPhase.ACTIVE or state.remaining is None:
        return state
    remaining = state.remaining - 1
    if remaining <= 0:
        return expire(replace(state, remaining=0), now)
    return replace(state, remaining=remaining)


def _record(state: DrillState, user_answer: str, correct: bool, now: float) -> DrillState:
    question = state.questions[state.index]
    entry = DetailEntry(
        question_id=question.id,
        is_correct=correct,
        user_answer=user_answer,
        correct_answer=question.correct_answer,
        time_spent=max(0.0, now - state.question_started_at),
    )
    streak = state.streak + 1 if correct else 0
    details = state.details + (entry,)
    state = replace(state, details=details, streak=streak, max_streak=max(state.max_streak, streak))
    if state.is_last:
        result = finalize(details, state.total_questions, now - state.started_at, state.topic)
        return replace(state, phase=DrillPhase.FINISHED, remaining=None, result=result)
    return replace(
        state,
        index=state.index + 1,
        question_started_at=now,
        remaining=state.time_budget,
    )


def longest_streak(details: Iterable[DetailEntry]) -> int:
    best = run = 0
    for entry in details:
        run = run + 1 if entry.is_correct else 0
        best = max(best, run)
    return best


def finalize(
    details: Sequence[DetailEntry],
    total_questions: int,
    elapsed_seconds: float,
    topic: QuestionType,
    *,
    result_id: Optional[str] = None,
    finished_at: Optional[datetime] = None,
) -> DrillResult:
    """Aggregate a complete details buffer into a DrillResult.

    The streak is recomputed from ``details`` rather than taken from the
    running counter kept while the drill was active.
    """
    if total_questions <= 0:
        raise ValueError("total_questions must be positive")
    if len(details) != total_questions:
        raise ValueError(f"Expected {total_questions} answered questions, got {len(details)}")
    correct_count = sum(1 for d in details if d.is_correct)
    score = 100 * correct_count / total_questions
    finished_at = finished_at or datetime.now(timezone.utc)
    return DrillResult(
        id=result_id or str(int(time.time() * 1000)),
        date=finished_at.isoformat(),
        topic=topic,
        score=score,
        total_questions=total_questions,
        time_taken=max(0.0, elapsed_seconds),
        accuracy=score,
        max_streak=longest_streak(details),
        details=tuple(details),
    )
