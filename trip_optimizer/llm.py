# trip_optimizer/llm.py
import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from trip_optimizer import config
from trip_optimizer.schemas import OptimizationResult

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False

if config.OPENAI_API_KEY:
    _client: Optional[OpenAI] = OpenAI(api_key=config.OPENAI_API_KEY)
else:  # pragma: no cover - exercised indirectly in tests without API key
    _client = None
    logger.warning("OPENAI_API_KEY not set; narrate_result will skip LLM summaries")

SUMMARY_SYSTEM = """You explain theme-park trip schedule changes to a family.
Use ONLY the facts in the provided JSON.
Respond in JSON: {"summary": "<2-3 plain sentences>"}.
Do not invent crowd numbers, parks or dates that are not in the input.
"""


def _result_digest(result: OptimizationResult) -> Dict[str, Any]:
    """Trim the result down to what the model needs to explain the recommendation."""
    best = result.recommended
    original = {a.day_id: a.destination_id for a in result.original_assignment}
    changes: List[Dict[str, Any]] = []
    if best is not None:
        for a in best.assignments:
            if original.get(a.day_id) != a.destination_id:
                changes.append({"date": a.date, "from": original.get(a.day_id), "to": a.destination_id})
    return {
        "strategy": best.strategy.value if best else None,
        "benefits": best.benefits.model_dump() if best else {},
        "changes": changes,
        "confidence": result.confidence,
        "reasoning": result.reasoning,
    }


def narrate_result(result: OptimizationResult, *, model: Optional[str] = None) -> Optional[str]:
    """Ask the hosted LLM for a short plain-language summary of the recommendation."""
    if result.recommended is None:
        return None
    if _client is None:
        logger.info("Skipping LLM narration (missing client or API key)")
        return None

    model = model or config.OPENAI_MODEL
    logger.info("Invoking LLM model %s to narrate %s", model, result.recommended.strategy.value)
    try:
        resp = _client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SUMMARY_SYSTEM},
                {"role": "user", "content": json.dumps(_result_digest(result))},
            ],
            temperature=0.2,
            response_format={"type": "json_object"},
        )
    except Exception:
        logger.warning("LLM narration request failed; returning result without summary", exc_info=True)
        return None

    raw = resp.choices[0].message.content
    try:
        payload = json.loads(raw or "")
    except ValueError:
        logger.warning("LLM narration returned non-JSON payload; ignoring")
        return None

    summary = payload.get("summary") if isinstance(payload, dict) else None
    return summary.strip() if isinstance(summary, str) and summary.strip() else None
