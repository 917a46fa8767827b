"""Extract a single Decision object from raw model text."""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from .errors import ParseError
from .models import Decision

# A fence enclosing the whole response; fences inside the payload are left alone
_ENCLOSING_FENCE_RE = re.compile(r"\A```[\w+-]*[ \t]*\n(.*)\n[ \t]*```\Z", flags=re.DOTALL)


def strip_code_fences(raw_text: str) -> str:
    """Remove a markdown code fence enclosing the whole payload, keeping its contents."""
    text = raw_text.strip()
    match = _ENCLOSING_FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def extract_object_text(raw_text: str) -> str:
    """Return the substring from the first ``{`` to the last ``}`` (inclusive)."""
    cleaned = strip_code_fences(raw_text or "")
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ParseError("no JSON object found in model response")
    return cleaned[start : end + 1]


def parse_decision(raw_text: str) -> Decision:
    """
    Parse the model's raw response into a Decision.

    Prose before or after the object is ignored. Missing ``tool`` and
    ``parameters`` default to ``""`` and ``{}``.

    Raises:
        ParseError: no object is present, the JSON is malformed, or the
            decoded value is not a usable decision object.
    """
    snippet = extract_object_text(raw_text)
    try:
        payload = json.loads(snippet)
    except json.JSONDecodeError as exc:
        raise ParseError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError("decoded JSON is not an object")
    try:
        return Decision.model_validate(payload)
    except ValidationError as exc:
        raise ParseError(f"invalid decision fields: {exc}") from exc
