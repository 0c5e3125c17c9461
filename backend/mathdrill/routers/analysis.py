from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from ..models import AppView, CamelModel, DrillResult
from ..service import DrillService, SessionNotFound, get_service
from .auth import Identity, get_current_user
from .drill import DrillSnapshot, snapshot

router = APIRouter(prefix="/analysis", tags=["analysis"])


class AnalysisResponse(CamelModel):
    view: AppView
    result: Optional[DrillResult] = None
    coaching_loading: bool = False
    coaching: Optional[str] = None


@router.get("", response_model=AnalysisResponse)
async def get_analysis(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        ctx = service.get(user.session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    if ctx.last_result is None:
        raise HTTPException(status_code=404, detail="No finished drill to analyse")
    return AnalysisResponse(
        view=ctx.view,
        result=ctx.last_result,
        coaching_loading=ctx.coaching_loading,
        coaching=ctx.coaching,
    )


@router.post("/retry", response_model=DrillSnapshot)
async def retry(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        ctx = await service.retry(user.session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return snapshot(ctx)


@router.post("/home", response_model=DrillSnapshot)
async def home(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
    try:
        ctx = service.home(user.session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return snapshot(ctx)
