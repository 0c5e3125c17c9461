"""Answer normalization and comparison."""

from __future__ import annotations
import re

_WHITESPACE = re.compile(r"\s+")


def normalize_answer(value: str) -> str:
    """Drop every whitespace character and lower-case the rest."""
    return _WHITESPACE.sub("", value or "").lower()


def is_correct(user_answer: str, correct_answer: str) -> bool:
    # No numeric tolerance: "x>y" and "y<x" are different answers
    return normalize_answer(user_answer) == normalize_answer(correct_answer)
