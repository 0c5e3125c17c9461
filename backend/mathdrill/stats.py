from __future__ import annotations
import math
from typing import List

from .models import CamelModel, DrillResult, User


class PerformancePoint(CamelModel):
    name: str
    score: float
    accuracy: float


class DashboardStats(CamelModel):
    total_drills: int
    average_score: int
    best_streak: int
    recent_performance: List[PerformancePoint]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def dashboard_stats(user: User, *, recent: int = 5) -> DashboardStats:
    history = user.history
    total = len(history)
    average = _round_half_up(sum(h.score for h in history) / total) if total else 0
    best_streak = max((h.max_streak for h in history), default=0)
    points = [
        PerformancePoint(name=f"Drill {i + 1}", score=h.score, accuracy=h.accuracy)
        for i, h in enumerate(history[-recent:])
    ]
    return DashboardStats(
        total_drills=total,
        average_score=average,
        best_streak=best_streak,
        recent_performance=points,
    )


def newest_first(user: User) -> List[DrillResult]:
    return list(reversed(user.history))
