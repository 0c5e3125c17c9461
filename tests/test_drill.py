import pytest

from mathdrill.drill import (
    DrillPhase,
    begin,
    finalize,
    longest_streak,
    new_drill,
    skip,
    submit,
    tick,
)
from mathdrill.models import TIMEOUT_ANSWER, DetailEntry, QuestionType


def _entry(n, correct):
    return DetailEntry(
        question_id=f"q{n}",
        is_correct=correct,
        user_answer="x" if correct else "y",
        correct_answer="x",
        time_spent=1.0,
    )


def _started(questions, clock, *, time_budget=30):
    state = new_drill(QuestionType.SIMPLIFICATION, time_budget=time_budget)
    return begin(state, questions, clock())


def test_begin_enters_first_question(questions, clock):
    state = _started(questions, clock)
    assert state.phase is DrillPhase.ACTIVE
    assert state.index == 0
    assert state.current_question.id == "q1"
    assert state.remaining == 30


def test_begin_refuses_empty_batch(clock):
    state = new_drill(QuestionType.SERIES)
    with pytest.raises(ValueError):
        begin(state, [], clock())


def test_three_correct_then_two_wrong(questions, clock):
    state = _started(questions, clock)
    for q in questions[:3]:
        clock.advance(4)
        state = submit(state, q.correct_answer, clock())
    for _ in questions[3:]:
        clock.advance(4)
        state = submit(state, "nope", clock())

    assert state.phase is DrillPhase.FINISHED
    result = state.result
    assert result.score == 60
    assert result.accuracy == result.score
    assert result.max_streak == 3
    assert result.total_questions == 5
    assert len(result.details) == 5
    assert result.time_taken == pytest.approx(20)


def test_skip_first_then_all_correct(questions, clock):
    state = _started(questions, clock)
    state = skip(state, clock())
    for q in questions[1:]:
        state = submit(state, q.correct_answer, clock())

    result = state.result
    assert result.score == 80
    assert result.max_streak == 4
    first = result.details[0]
    assert first.user_answer == TIMEOUT_ANSWER
    assert first.is_correct is False


def test_blank_submit_is_ignored(questions, clock):
    state = _started(questions, clock)
    assert submit(state, "", clock()) is state
    assert submit(state, None, clock()) is state
    assert submit(state, "   ", clock()) is state


def test_countdown_expiry_records_timeout(questions, clock):
    state = _started(questions, clock, time_budget=3)
    for _ in range(2):
        clock.advance(1)
        state = tick(state, clock())
    assert state.index == 0
    assert state.remaining == 1

    clock.advance(1)
    state = tick(state, clock())
    assert state.index == 1
    assert state.remaining == 3
    entry = state.details[0]
    assert entry.user_answer == TIMEOUT_ANSWER
    assert entry.is_correct is False
    assert entry.time_spent == pytest.approx(3)
    assert entry.correct_answer == questions[0].correct_answer


def test_untimed_drill_ignores_ticks(questions, clock):
    state = _started(questions, clock, time_budget=None)
    assert state.remaining is None
    assert tick(state, clock()) is state


def test_streak_tracking_and_reset(questions, clock):
    state = _started(questions, clock)
    state = submit(state, questions[0].correct_answer, clock())
    state = submit(state, questions[1].correct_answer, clock())
    assert (state.streak, state.max_streak) == (2, 2)
    state = submit(state, "wrong", clock())
    assert (state.streak, state.max_streak) == (0, 2)


def test_time_spent_is_per_question(questions, clock):
    state = _started(questions, clock)
    clock.advance(7.5)
    state = submit(state, "a", clock())
    clock.advance(2)
    state = submit(state, "b", clock())
    assert [d.time_spent for d in state.details] == [pytest.approx(7.5), pytest.approx(2)]


def test_finished_drill_accepts_no_more_events(questions, clock):
    state = _started(questions[:1], clock)
    state = submit(state, questions[0].correct_answer, clock())
    assert state.phase is DrillPhase.FINISHED
    assert state.result.score == 100
    with pytest.raises(ValueError):
        submit(state, "again", clock())
    with pytest.raises(ValueError):
        skip(state, clock())
    assert tick(state, clock()) is state


def test_finalize_requires_every_question_answered():
    details = [_entry(1, True), _entry(2, False)]
    with pytest.raises(ValueError):
        finalize(details, 3, 10.0, QuestionType.QUADRATIC)


def test_finalize_score_is_not_truncated():
    details = [_entry(1, True), _entry(2, False), _entry(3, False)]
    result = finalize(details, 3, 12.0, QuestionType.APPROXIMATION)
    assert result.score == pytest.approx(100 / 3)
    assert 0 <= result.score <= 100


def test_finalize_recomputes_streak_from_details():
    details = [_entry(1, True), _entry(2, True), _entry(3, False), _entry(4, True), _entry(5, True), _entry(6, True)]
    result = finalize(details, 6, 30.0, QuestionType.SERIES, result_id="r1")
    assert result.max_streak == 3
    assert result.id == "r1"
    assert result.topic is QuestionType.SERIES


@pytest.mark.parametrize(
    "flags, expected",
    [
        ([], 0),
        ([False, False], 0),
        ([True], 1),
        ([True, False, True, True], 2),
        ([True, True, True, True, True], 5),
    ],
)
def test_longest_streak(flags, expected):
    assert longest_streak(_entry(i, f) for i, f in enumerate(flags)) == expected
