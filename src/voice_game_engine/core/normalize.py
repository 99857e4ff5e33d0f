from __future__ import annotations

import json
from typing import Any, Iterable

from .types import Entity, Intent, Interpretation, RecognitionHypothesis


def parse_json_dict(text: str | None) -> dict[str, Any]:
    if not text:
        return {}
    try:
        data = json.loads(text)
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def dump_json(data: dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=True, separators=(",", ":"))


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def interpretation_from_payload(raw: Any) -> Interpretation | None:
    """Normalize an NLU result into an ``Interpretation``.

    Accepts the browser speech library's ``nluValue`` object as well as a full
    conversation-analysis REST response (``result.prediction``). Malformed
    intents or entities are dropped rather than rejected.
    """
    if not isinstance(raw, dict):
        return None
    result = raw.get("result")
    if isinstance(result, dict) and isinstance(result.get("prediction"), dict):
        raw = result["prediction"]

    intents: list[Intent] = []
    for item in raw.get("intents") or []:
        if not isinstance(item, dict) or not item.get("category"):
            continue
        intents.append(Intent(category=str(item["category"]), confidence_score=_as_float(item.get("confidenceScore"))))

    entities: list[Entity] = []
    for item in raw.get("entities") or []:
        if not isinstance(item, dict) or not item.get("category"):
            continue
        entities.append(
            Entity(
                category=str(item["category"]),
                text=str(item.get("text") or ""),
                confidence_score=_as_float(item.get("confidenceScore")),
                offset=_as_int(item.get("offset")),
                length=_as_int(item.get("length")),
            )
        )

    top_intent = str(raw.get("topIntent") or "").strip()
    if not top_intent and intents:
        top_intent = max(intents, key=lambda intent: intent.confidence_score).category
    return Interpretation(
        top_intent=top_intent or "None",
        intents=tuple(intents),
        entities=tuple(entities),
        project_kind=str(raw.get("projectKind") or "Conversation"),
    )


def hypotheses_from_payload(raw: Any) -> list[RecognitionHypothesis]:
    if not isinstance(raw, list):
        return []
    out: list[RecognitionHypothesis] = []
    for item in raw:
        if isinstance(item, RecognitionHypothesis):
            out.append(item)
        elif isinstance(item, dict) and item.get("utterance") is not None:
            out.append(
                RecognitionHypothesis(
                    utterance=str(item["utterance"]),
                    confidence=_as_float(item.get("confidence")),
                )
            )
    return out


def unique_items(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out
