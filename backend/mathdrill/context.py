"""
Session context: one user's view of the app as an immutable snapshot.

Every transition takes the current SessionContext and returns a new one.
Asynchronous completions (question batches, countdown ticks, coaching text)
carry the ``generation`` that was current when they were requested; starting,
cancelling or leaving a drill bumps the generation so late completions are
dropped instead of being applied to a different drill.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from . import drill as machine
from .drill import DrillPhase, DrillState
from .models import AppView, DrillResult, Question, QuestionType, User


@dataclass(frozen=True)
class SessionContext:
    session_id: str
    view: AppView = AppView.LOGIN
    user: Optional[User] = None
    topic: Optional[QuestionType] = None
    timed: bool = True
    drill: Optional[DrillState] = None
    last_result: Optional[DrillResult] = None
    coaching: Optional[str] = None
    coaching_loading: bool = False
    generation: int = 0
    last_seen: float = 0.0  # service clock reading of the last authenticated request

    def is_current(self, generation: int) -> bool:
        return generation == self.generation


def login(ctx: SessionContext, name: str) -> SessionContext:
    name = (name or "").strip()
    if not name:
        raise ValueError("name is required")
    return replace(ctx, view=AppView.DASHBOARD, user=User(name=name))


def logout(ctx: SessionContext) -> SessionContext:
    return SessionContext(session_id=ctx.session_id, generation=ctx.generation + 1)


def _require_user(ctx: SessionContext) -> User:
    if ctx.user is None:
        raise ValueError("Not signed in")
    return ctx.user


def start_drill(
    ctx: SessionContext,
    topic: QuestionType,
    *,
    timed: bool = True,
    time_budget: int = 30,
) -> SessionContext:
    _require_user(ctx)
    return replace(
        ctx,
        view=AppView.DRILL,
        topic=topic,
        timed=timed,
        drill=machine.new_drill(topic, time_budget=time_budget if timed else None),
        last_result=None,
        coaching=None,
        coaching_loading=False,
        generation=ctx.generation + 1,
    )


def drill_loaded(
    ctx: SessionContext,
    generation: int,
    questions: Sequence[Question],
    now: float,
) -> SessionContext:
    """Apply a fetched batch. An empty batch quietly returns to the dashboard."""
    if not ctx.is_current(generation) or ctx.drill is None or ctx.drill.phase is not DrillPhase.LOADING:
        return ctx
    if not questions:
        return replace(ctx, view=AppView.DASHBOARD, topic=None, drill=None)
    return replace(ctx, drill=machine.begin(ctx.drill, questions, now))


def _active_drill(ctx: SessionContext, question_id: Optional[str]) -> DrillState:
    if ctx.drill is None or ctx.drill.phase is not DrillPhase.ACTIVE:
        raise ValueError("No drill in progress")
    current = ctx.drill.current_question
    if question_id is not None and current is not None and question_id != current.id:
        raise ValueError("Question ID mismatch")
    return ctx.drill


def resolve_option(question: Question, option_index: int) -> str:
    if not question.options:
        raise ValueError("Question has no options")
    if option_index < 0 or option_index >= len(question.options):
        raise ValueError(f"optionIndex must be 0..{len(question.options) - 1}")
    return question.options[option_index]


def submit_answer(
    ctx: SessionContext,
    answer: Optional[str],
    now: float,
    *,
    question_id: Optional[str] = None,
    option_index: Optional[int] = None,
) -> SessionContext:
    state = _active_drill(ctx, question_id)
    if option_index is not None:
        # Picking an option is the same as typing its text
        answer = resolve_option(state.current_question, option_index)
    return _after_drill_step(ctx, machine.submit(state, answer, now))


def skip_question(ctx: SessionContext, now: float, *, question_id: Optional[str] = None) -> SessionContext:
    state = _active_drill(ctx, question_id)
    return _after_drill_step(ctx, machine.skip(state, now))


def countdown_tick(ctx: SessionContext, generation: int, now: float) -> SessionContext:
    if not ctx.is_current(generation) or ctx.drill is None:
        return ctx
    return _after_drill_step(ctx, machine.tick(ctx.drill, now))


def _after_drill_step(ctx: SessionContext, state: DrillState) -> SessionContext:
    if state is ctx.drill:
        return ctx
    if state.phase is DrillPhase.FINISHED and state.result is not None:
        return complete_drill(ctx, state.result)
    return replace(ctx, drill=state)


def _unique_result(user: User, result: DrillResult) -> DrillResult:
    taken = {r.id for r in user.history}
    if result.id not in taken:
        return result
    base, n = result.id, 1
    while f"{base}-{n}" in taken:
        n += 1
    return result.model_copy(update={"id": f"{base}-{n}"})


def complete_drill(ctx: SessionContext, result: DrillResult) -> SessionContext:
    """Hand the finished result to reporting: history, analysis view, coaching pending."""
    user = _require_user(ctx)
    result = _unique_result(user, result)
    user = user.model_copy(update={"history": user.history + (result,)})
    return replace(
        ctx,
        view=AppView.ANALYSIS,
        user=user,
        drill=None,
        last_result=result,
        coaching=None,
        coaching_loading=True,
    )


def coaching_ready(ctx: SessionContext, generation: int, result_id: str, text: str) -> SessionContext:
    if (
        not ctx.is_current(generation)
        or not ctx.coaching_loading
        or ctx.last_result is None
        or ctx.last_result.id != result_id
    ):
        return ctx
    return replace(ctx, coaching=text, coaching_loading=False)


def cancel_drill(ctx: SessionContext) -> SessionContext:
    return replace(
        ctx,
        view=AppView.DASHBOARD,
        topic=None,
        drill=None,
        generation=ctx.generation + 1,
    )


def home(ctx: SessionContext) -> SessionContext:
    _require_user(ctx)
    return replace(
        ctx,
        view=AppView.DASHBOARD,
        topic=None,
        drill=None,
        last_result=None,
        coaching=None,
        coaching_loading=False,
        generation=ctx.generation + 1,
    )


def retry(ctx: SessionContext, *, time_budget: int = 30) -> SessionContext:
    if ctx.topic is None:
        return home(ctx)
    return start_drill(ctx, ctx.topic, timed=ctx.timed, time_budget=time_budget)
