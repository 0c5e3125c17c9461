import pytest

from mathdrill.answers import is_correct, normalize_answer


@pytest.mark.parametrize(
    "user_answer, correct_answer",
    [
        (" X > Y ", "x>y"),
        ("x>y", " X > Y "),
        ("1 2 5", "125"),
        ("\t42\n", "42"),
        ("No Relation", "no relation"),
        ("x  <=  y", "X<=Y"),
    ],
)
def test_whitespace_and_case_do_not_matter(user_answer, correct_answer):
    assert is_correct(user_answer, correct_answer)


@pytest.mark.parametrize(
    "user_answer, correct_answer",
    [
        ("y<x", "x>y"),
        ("2.50", "2.5"),
        ("125.0", "125"),
        ("x >= y", "x > y"),
    ],
)
def test_no_semantic_or_numeric_equivalence(user_answer, correct_answer):
    assert not is_correct(user_answer, correct_answer)


def test_normalize_strips_all_whitespace():
    assert normalize_answer("  A  b\tC\n") == "abc"
    assert normalize_answer("") == ""


def test_comparison_is_deterministic():
    results = {is_correct(" 3 ", "3") for _ in range(10)}
    assert results == {True}
