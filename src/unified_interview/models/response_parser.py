"""
Structured-output recovery for LLM responses.

Models wrap JSON in code fences, add commentary around it, or emit Python
literals instead of JSON. These helpers recover the payload and validate it
against the pydantic schema the caller asked for.
"""

import ast
import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")


class MalformedExtractionError(ValueError):
    """Raised when collaborator output does not match the requested schema."""

    def __init__(self, message: str, raw: Any = None) -> None:
        super().__init__(message)
        self.raw = raw


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (``` or ```json) anywhere in the text."""
    if not text:
        return ""
    return _FENCE_RE.sub("", text).strip()


def find_json_block(text: str) -> str | None:
    """
    Find the first balanced JSON object or array in free text.

    Args:
        text: Text that may contain a JSON value surrounded by prose.

    Returns:
        The bracketed substring, or None if no opening bracket exists.
    """
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None

    start_idx = min(starts)
    open_bracket = text[start_idx]
    close_bracket = "}" if open_bracket == "{" else "]"

    depth = 0
    in_string = False
    escaped = False
    for i, char in enumerate(text[start_idx:], start=start_idx):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == open_bracket:
            depth += 1
        elif char == close_bracket:
            depth -= 1
            if depth == 0:
                return text[start_idx : i + 1]

    # Unbalanced: hand back the tail and let the repair pass try.
    return text[start_idx:]


def _fix_json_string(json_str: str) -> str:
    """Attempt to fix common JSON issues from LLM output."""
    if not json_str:
        return ""

    result = strip_code_fences(json_str)

    # Normalize curly quotes.
    result = (
        result.replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
    )

    # Trailing commas before closing braces/brackets.
    result = re.sub(r",(\s*[}\]])", r"\1", result)

    # Python literals to JSON literals.
    result = re.sub(r"\bNone\b", "null", result)
    result = re.sub(r"\bTrue\b", "true", result)
    result = re.sub(r"\bFalse\b", "false", result)

    # Bare keys right after { or , ({foo: "bar"}).
    result = re.sub(
        r"([\{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)",
        r'\1"\2"\3',
        result,
    )

    if result.count("'") > 0 and result.count('"') == 0:
        result = result.replace("'", '"')

    return result


def _coerce_to_json_types(obj: Any) -> Any:
    """Coerce an `ast.literal_eval` result to JSON-safe types."""
    if obj is ...:
        return None
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, dict):
        return {str(k): _coerce_to_json_types(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_coerce_to_json_types(v) for v in obj]
    return str(obj)


def parse_json_loose(raw: str) -> dict[str, Any] | list[Any] | None:
    """
    Parse JSON with best-effort repair.

    Returns:
        A dict/list on success, else None.
    """
    if not raw:
        return None

    try:
        return json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        pass

    cleaned = _fix_json_string(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    try:
        obj = ast.literal_eval(strip_code_fences(raw))
    except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
        try:
            obj = ast.literal_eval(cleaned)
        except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
            return None

    if not isinstance(obj, (dict, list, tuple, set)):
        return None

    try:
        return json.loads(json.dumps(_coerce_to_json_types(obj)))
    except (TypeError, ValueError):
        return None


def extract_json(text: str) -> dict[str, Any]:
    """
    Recover a JSON object from raw model output.

    Lists are wrapped as {"items": [...]}; anything unrecoverable yields {}.
    """
    content = strip_code_fences(text or "")
    if not content:
        return {}

    block = find_json_block(content)
    for candidate in (block, content):
        if not candidate:
            continue
        parsed = parse_json_loose(candidate)
        if isinstance(parsed, dict):
            return parsed
        if isinstance(parsed, list):
            return {"items": parsed}

    logger.debug(f"No JSON recovered from response: {content[:200]}")
    return {}


def parse_structured(payload: dict[str, Any] | str, model: type[ModelT]) -> ModelT:
    """
    Validate a recovered payload against the expected schema.

    Args:
        payload: Parsed JSON dict, or raw text to recover JSON from.
        model: Pydantic model describing the expected structure.

    Returns:
        The validated model instance.

    Raises:
        MalformedExtractionError: If the payload does not match the schema.
    """
    data = extract_json(payload) if isinstance(payload, str) else payload
    if not isinstance(data, dict) or not data:
        raise MalformedExtractionError(f"Empty or non-object payload for {model.__name__}", raw=payload)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedExtractionError(
            f"Payload does not match {model.__name__}: {e.error_count()} error(s)",
            raw=payload,
        ) from e
