from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import field_validator

from ..context import SessionContext
from ..drill import DrillPhase
from ..models import AppView, CamelModel, DetailEntry, DrillResult, QuestionType
from ..service import DrillService, SessionNotFound, get_service, needs_coaching
from .auth import Identity, get_current_user


router = APIRouter(prefix="/drill", tags=["drill"])


class StartRequest(CamelModel):
    topic: QuestionType
    timed: bool = True

    @field_validator("topic", mode="before")
    @classmethod
    def _topic(cls, value):
        # Accept the label ("Number Series") or the short key ("series")
        return QuestionType(value) if isinstance(value, str) else value


class SubmitRequest(CamelModel):
    question_id: str
    answer: Optional[str] = None
    option_index: Optional[int] = None


class SkipRequest(CamelModel):
    question_id: Optional[str] = None


class QuestionPayload(CamelModel):
    id: str
    type: str
    question_text: str
    options: Optional[List[str]] = None


class DrillSnapshot(CamelModel):
    view: AppView
    started: bool
    topic: Optional[QuestionType] = None
    timed: bool = True
    phase: Optional[DrillPhase] = None
    question_index: int = 0
    total_questions: int = 0
    question: Optional[QuestionPayload] = None
    remaining_seconds: Optional[int] = None
    time_budget: Optional[int] = None
    streak: int = 0
    max_streak: int = 0
    answered: List[DetailEntry] = []
    last_outcome: Optional[DetailEntry] = None
    result: Optional[DrillResult] = None


def snapshot(ctx: SessionContext, *, last_outcome: Optional[DetailEntry] = None) -> DrillSnapshot:
    drill = ctx.drill
    if drill is None:
        return DrillSnapshot(
            view=ctx.view,
            started=False,
            topic=ctx.topic,
            timed=ctx.timed,
            last_outcome=last_outcome,
            result=ctx.last_result if ctx.view is AppView.ANALYSIS else None,
        )
    question = drill.current_question
    return DrillSnapshot(
        view=ctx.view,
        started=drill.phase is DrillPhase.ACTIVE,
        topic=drill.topic,
        timed=ctx.timed,
        phase=drill.phase,
        question_index=drill.index,
        total_questions=drill.total_questions,
        question=(
            QuestionPayload(
                id=question.id,
                type=question.type,
                question_text=question.question_text,
                options=list(question.options) if question.options is not None else None,
            )
            if question is not None
            else None
        ),
        remaining_seconds=drill.remaining,
        time_budget=drill.time_budget,
        streak=drill.streak,
        max_streak=drill.max_streak,
        answered=list(drill.details),
        last_outcome=last_outcome,
    )


def _latest_outcome(before: SessionContext, after: SessionContext) -> Optional[DetailEntry]:
    """The entry recorded by this step, if any, for the correct/missed feedback."""
    if after.drill is not None and before.drill is not None:
        if len(after.drill.details) > len(before.drill.details):
            return after.drill.details[-1]
        return None
    if needs_coaching(before, after):
        return after.last_result.details[-1]
    return None


def _finish_step(
    before: SessionContext,
    after: SessionContext,
    background: BackgroundTasks,
    service: DrillService,
) -> DrillSnapshot:
    if needs_coaching(before, after):
        background.add_task(service.run_coaching, after.session_id, after.generation, after.last_result.id)
    return snapshot(after, last_outcome=_latest_outcome(before, after))


@router.post("/start", response_model=DrillSnapshot)
async def start_drill(req: StartRequest, user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        ctx = await service.start_drill(user.session_id, req.topic, timed=req.timed)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return snapshot(ctx)


@router.get("", response_model=DrillSnapshot)
async def get_drill(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        return snapshot(service.get(user.session_id))
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/submit", response_model=DrillSnapshot)
async def submit_answer(
    req: SubmitRequest,
    background: BackgroundTasks,
    user: Identity = Depends(get_current_user),
    service: DrillService = Depends(get_service),
):
    try:
        before = service.get(user.session_id)
        after = service.submit(
            user.session_id,
            req.answer,
            question_id=req.question_id,
            option_index=req.option_index,
        )
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _finish_step(before, after, background, service)


@router.post("/skip", response_model=DrillSnapshot)
async def skip_question(
    req: SkipRequest,
    background: BackgroundTasks,
    user: Identity = Depends(get_current_user),
    service: DrillService = Depends(get_service),
):
    try:
        before = service.get(user.session_id)
        after = service.skip(user.session_id, question_id=req.question_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _finish_step(before, after, background, service)


@router.post("/tick", response_model=DrillSnapshot)
async def tick(background: BackgroundTasks, user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    if service.countdown_enabled:
        # The server already ticks this drill once a second
        raise HTTPException(status_code=409, detail="Countdown is driven by the server")
    try:
        before = service.get(user.session_id)
        after = service.tick(user.session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    return _finish_step(before, after, background, service)


@router.post("/cancel", response_model=DrillSnapshot)
async def cancel_drill(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        return snapshot(service.cancel(user.session_id))
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
