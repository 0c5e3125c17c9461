from mathdrill.models import DrillResult, QuestionType, User
from mathdrill.stats import dashboard_stats, newest_first


def _result(n: int, score: float, streak: int = 0) -> DrillResult:
    return DrillResult(
        id=str(n),
        date=f"2026-03-{n:02d}T09:00:00+00:00",
        topic=QuestionType.SIMPLIFICATION,
        score=score,
        total_questions=4,
        time_taken=40.0,
        accuracy=score,
        max_streak=streak,
        details=(),
    )


def test_no_history():
    stats = dashboard_stats(User(name="Meera"))
    assert stats.total_drills == 0
    assert stats.average_score == 0
    assert stats.best_streak == 0
    assert stats.recent_performance == []


def test_average_rounds_half_up():
    user = User(name="Meera", history=(_result(1, 45), _result(2, 40)))
    assert dashboard_stats(user).average_score == 43
    user = User(name="Meera", history=(_result(1, 20), _result(2, 25)))
    assert dashboard_stats(user).average_score == 23


def test_recent_performance_keeps_the_last_five():
    history = tuple(_result(n, n * 10, streak=n % 4) for n in range(1, 8))
    stats = dashboard_stats(User(name="Meera", history=history))

    assert stats.total_drills == 7
    assert stats.average_score == 40
    assert stats.best_streak == 3
    assert [p.name for p in stats.recent_performance] == ["Drill 1", "Drill 2", "Drill 3", "Drill 4", "Drill 5"]
    assert [p.score for p in stats.recent_performance] == [30, 40, 50, 60, 70]
    assert [p.accuracy for p in stats.recent_performance] == [30, 40, 50, 60, 70]


def test_recent_window_is_configurable():
    history = tuple(_result(n, n * 10) for n in range(1, 5))
    stats = dashboard_stats(User(name="Meera", history=history), recent=2)
    assert [(p.name, p.score) for p in stats.recent_performance] == [("Drill 1", 30), ("Drill 2", 40)]


def test_history_lists_newest_first():
    user = User(name="Meera", history=(_result(1, 20), _result(2, 40), _result(3, 60)))
    assert [r.id for r in newest_first(user)] == ["3", "2", "1"]
    assert [r.id for r in user.history] == ["1", "2", "3"]
