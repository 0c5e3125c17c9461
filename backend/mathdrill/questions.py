from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .gemini_client import GeminiClient
from .models import QUESTION_TYPE_KEYS, Question, QuestionType
from .settings import settings

logger = logging.getLogger(__name__)


# Gemini structured-output schema (OpenAPI subset, upper-case type names)
QUESTION_BATCH_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "STRING"},
            "type": {"type": "STRING", "enum": QUESTION_TYPE_KEYS},
            "questionText": {
                "type": "STRING",
                "description": "The mathematical problem statement. For quadratic, provide two equations labeled I and II.",
            },
            "correctAnswer": {
                "type": "STRING",
                "description": "The precise numerical answer or relationship (e.g., x > y).",
            },
            "explanation": {"type": "STRING", "description": "Short step-by-step logic to solve it."},
            "options": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": "Exactly 5 plausible options including the correct one.",
            },
        },
        "required": ["id", "type", "questionText", "correctAnswer", "explanation", "options"],
    },
}


_TOPIC_GUIDELINES: Dict[QuestionType, str] = {
    QuestionType.SERIES: "Provide the series with a missing term (marked as ?) or ask for the wrong term.",
    QuestionType.SIMPLIFICATION: "Use standard BODMAS rules. Complex calculations but solvable mentally or with quick scribbling.",
    QuestionType.APPROXIMATION: "Use standard BODMAS rules with decimals, percentages and roots to be estimated to the nearest option.",
    QuestionType.QUADRATIC: (
        "Provide two equations (I and II) involving x and y. The answer must be the relationship "
        "written exactly as one of: x > y, x < y, x >= y, x <= y, x = y or no relation."
    ),
}


def build_question_prompt(topic: QuestionType, count: int) -> str:
    return (
        f"Generate {count} unique, challenging IBPS RRB PO level math questions for the topic: \"{topic.value}\".\n"
        f"Every question must use type \"{topic.key}\".\n\n"
        "Guidelines:\n"
        f"- {_TOPIC_GUIDELINES[topic]}\n"
        "- Give exactly 5 options per question; one of them must be the correct answer written identically.\n"
        "- Ensure answers are distinct and correct.\n"
        "- Give every question a short unique id.\n"
        "Return ONLY the JSON array, no markdown."
    )


def _extract_json_array(text: str) -> Any:
    try:
        return json.loads(text)
    except Exception:
        pass
    code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if code_block:
        try:
            return json.loads(code_block.group(1))
        except Exception:
            pass
    first = text.find("[")
    last = text.rfind("]")
    if first != -1 and last > first:
        try:
            return json.loads(text[first : last + 1])
        except Exception:
            pass
    raise ValueError("Question service did not return valid JSON")


def parse_question_batch(raw: str, count: int) -> List[Question]:
    """Validate a raw service payload; raises ValueError on any schema problem."""
    data = _extract_json_array(raw)
    if not isinstance(data, list):
        raise ValueError("Question payload is not a list")
    questions: List[Question] = []
    seen_ids = set()
    for i, item in enumerate(data[:count]):
        if not isinstance(item, dict):
            raise ValueError(f"Question {i + 1} is not an object")
        try:
            question = Question.model_validate(item)
        except ValidationError as err:
            raise ValueError(f"Question {i + 1} failed validation: {err}") from err
        if question.id in seen_ids:
            raise ValueError(f"Duplicate question id {question.id!r}")
        seen_ids.add(question.id)
        questions.append(question)
    return questions


async def fetch_questions(
    topic: QuestionType,
    count: Optional[int] = None,
    *,
    client: Optional[GeminiClient] = None,
) -> List[Question]:
    """Single best-effort request for a batch; an empty list means no drill."""
    count = count or settings.drill_question_count
    if count < 1:
        raise ValueError("count must be a positive integer")
    owns_client = client is None
    try:
        if client is None:
            client = GeminiClient()
        raw = await client.generate_json(
            build_question_prompt(topic, count),
            response_schema=QUESTION_BATCH_SCHEMA,
            temperature=settings.gemini_temperature,
        )
        if not raw or not raw.strip():
            logger.warning("Question service returned an empty payload for %s", topic.value)
            return []
        questions = parse_question_batch(raw, count)
    except Exception:
        logger.warning("Failed to generate questions for %s", topic.value, exc_info=True)
        return []
    finally:
        if owns_client and client is not None:
            await client.aclose()
    logger.info("Fetched %d %s questions", len(questions), topic.key)
    return questions
