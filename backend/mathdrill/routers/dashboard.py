from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from ..models import AppView, CamelModel, DrillResult, QuestionType
from ..service import DrillService, SessionNotFound, get_service
from ..stats import DashboardStats, dashboard_stats, newest_first
from .auth import Identity, get_current_user

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class TopicCard(CamelModel):
    id: QuestionType
    key: str
    label: str
    desc: str


TOPICS: List[TopicCard] = [
    TopicCard(id=QuestionType.SIMPLIFICATION, key=QuestionType.SIMPLIFICATION.key, label="Simplification", desc="Rapid fire BODMAS & calculations"),
    TopicCard(id=QuestionType.SERIES, key=QuestionType.SERIES.key, label="Number Series", desc="Identify missing or wrong patterns"),
    TopicCard(id=QuestionType.QUADRATIC, key=QuestionType.QUADRATIC.key, label="Quadratic Eq.", desc="Root comparison (x > y, etc.)"),
    TopicCard(id=QuestionType.APPROXIMATION, key=QuestionType.APPROXIMATION.key, label="Approximation", desc="Estimate values quickly"),
]


class DashboardResponse(CamelModel):
    name: str
    view: AppView
    stats: DashboardStats
    topics: List[TopicCard]
    history: List[DrillResult]


@router.get("", response_model=DashboardResponse)
async def get_dashboard(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        ctx = service.get(user.session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    return DashboardResponse(
        name=ctx.user.name,
        view=ctx.view,
        stats=dashboard_stats(ctx.user),
        topics=TOPICS,
        history=newest_first(ctx.user),
    )
