from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from .gemini_client import GeminiClient
from .models import DrillResult

logger = logging.getLogger(__name__)

FALLBACK_ADVICE = "Great effort! Consistency is key."
EMPTY_ADVICE = "Keep practicing to improve speed!"


def build_summary(result: DrillResult) -> Dict[str, Any]:
    # The user's raw answers are left out to keep the payload small
    return {
        "topic": result.topic.value,
        "score": result.score,
        "details": [
            {
                "wasCorrect": d.is_correct,
                "timeTaken": d.time_spent,
                "correctAnswer": d.correct_answer,
            }
            for d in result.details
        ],
    }


def build_coaching_prompt(summary: Dict[str, Any]) -> str:
    return (
        "Analyze this student's math drill performance:\n"
        f"{json.dumps(summary)}\n\n"
        "Provide 3 concise, bullet-pointed tips to improve their speed and accuracy for IBPS PO exams. "
        "Focus on the types of errors made."
    )


async def request_coaching(summary: Dict[str, Any], *, client: Optional[GeminiClient] = None) -> str:
    """Ask the coaching service for advice; never raises."""
    owns_client = client is None
    try:
        if client is None:
            client = GeminiClient()
        text = await client.generate(build_coaching_prompt(summary))
    except Exception:
        logger.warning("Coaching request failed; using fallback advice", exc_info=True)
        return FALLBACK_ADVICE
    finally:
        if owns_client and client is not None:
            await client.aclose()
    return (text or "").strip() or EMPTY_ADVICE
