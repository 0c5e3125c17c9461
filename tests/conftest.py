import json

import httpx
import pytest

from mathdrill.gemini_client import GeminiClient
from mathdrill.models import Question


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_question(n: int, answer: str = None, *, options=True, type_="simplification") -> Question:
    answer = answer if answer is not None else str(n * 10)
    return Question(
        id=f"q{n}",
        type=type_,
        question_text=f"{n} * 10 = ?",
        correct_answer=answer,
        explanation=f"{n} times ten",
        options=(answer, "1", "2", "3", "4") if options else None,
    )


def question_records(count: int = 5):
    return [make_question(i + 1).model_dump(by_alias=True) for i in range(count)]


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeGemini:
    """Answers Gemini REST calls: schema requests get the question batch, the rest get coaching."""

    def __init__(self, batch=None, advice: str = "- Tip one\n- Tip two\n- Tip three") -> None:
        self.batch = question_records() if batch is None else batch
        self.advice = advice
        self.requests = []
        self.fail_questions = False
        self.fail_coaching = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        structured = "responseSchema" in body.get("generationConfig", {})
        if structured:
            if self.fail_questions:
                return httpx.Response(500, json={"error": "boom"})
            text = self.batch if isinstance(self.batch, str) else json.dumps(self.batch)
            return httpx.Response(200, json=gemini_body(text))
        if self.fail_coaching:
            return httpx.Response(503, json={"error": "unavailable"})
        return httpx.Response(200, json=gemini_body(self.advice))

    def client(self) -> GeminiClient:
        return GeminiClient(api_key="test-key", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest.fixture(autouse=True)
def _no_openrouter(monkeypatch):
    from mathdrill.settings import settings

    monkeypatch.setattr(settings, "openrouter_api_key", None)


@pytest.fixture
def questions():
    return [make_question(i + 1) for i in range(5)]
