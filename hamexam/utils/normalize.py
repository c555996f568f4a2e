"""
Normalization of loosely-shaped client and import data

Everything that accepts answers, options or tags from outside passes through
here once, so the services only ever see one canonical shape.
"""
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_CORRECT_FLAGS = ("is_correct", "isCorrect", "correct", "answer", "isRight")
_ID_KEYS = ("id", "value", "key", "code")
_CONTAINER_KEYS = ("value", "set", "values", "items", "options", "data")


def normalize_answer_list(raw: Any) -> List[str]:
    """
    Coerce a submitted answer into a list of option ids

    Accepts a list, a JSON-encoded list, a bare string, or a container dict
    holding a list under one of the usual keys.
    """
    if isinstance(raw, (list, tuple)):
        return [str(item) for item in raw if item is not None and str(item) != ""]

    if isinstance(raw, str):
        trimmed = raw.strip()
        if not trimmed:
            return []
        try:
            parsed = json.loads(trimmed)
        except ValueError:
            return [trimmed]
        if isinstance(parsed, (list, dict)):
            return normalize_answer_list(parsed)
        return [trimmed]

    if isinstance(raw, dict):
        for key in _CONTAINER_KEYS:
            if isinstance(raw.get(key), list):
                return normalize_answer_list(raw[key])

    return []


def _unwrap_list(raw: Any) -> list:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return []
        return _unwrap_list(parsed) if isinstance(parsed, (list, dict)) else []
    if isinstance(raw, dict):
        for key in _CONTAINER_KEYS:
            if isinstance(raw.get(key), list):
                return raw[key]
    return []


def normalize_options(raw: Any) -> List[Dict[str, Any]]:
    """
    Convert an option list into [{"id", "text", "is_correct"}]

    Plain strings get letter ids in order. Options without an id are dropped.
    """
    options = []
    for index, item in enumerate(_unwrap_list(raw)):
        if isinstance(item, str):
            options.append({"id": chr(ord("A") + index), "text": item, "is_correct": False})
            continue
        if not isinstance(item, dict):
            continue

        option_id = next((item[k] for k in _ID_KEYS if item.get(k) not in (None, "")), None)
        if option_id is None:
            logger.warning(f"Dropping option without id at position {index}")
            continue

        options.append({
            "id": str(option_id),
            "text": str(item.get("text") or item.get("label") or ""),
            "is_correct": any(item.get(flag) is True for flag in _CORRECT_FLAGS),
        })
    return options


def derive_correct_answers(options: List[Dict[str, Any]]) -> List[str]:
    """Correct option ids taken from normalized option flags"""
    return [opt["id"] for opt in options if opt.get("is_correct")]


def normalize_tags(raw: Any) -> List[str]:
    """Tags may arrive as a list or as a comma/semicolon separated string"""
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.replace(";", ",").replace("，", ",").split(",")
        return [p.strip() for p in parts if p.strip()]
    if isinstance(raw, (list, tuple)):
        return [str(t).strip() for t in raw if t is not None and str(t).strip()]
    return []


def normalize_question_type(raw: Optional[str], correct_count: int = 1) -> str:
    """Map assorted type labels onto single_choice / multiple_choice / true_false"""
    value = (raw or "").strip().lower().replace("-", "_").replace(" ", "_")
    aliases = {
        "single": "single_choice",
        "single_choice": "single_choice",
        "multiple": "multiple_choice",
        "multi": "multiple_choice",
        "multiple_choice": "multiple_choice",
        "true_false": "true_false",
        "truefalse": "true_false",
        "judge": "true_false",
    }
    if value in aliases:
        return aliases[value]
    return "multiple_choice" if correct_count > 1 else "single_choice"
