from __future__ import annotations

import json
import re

from repo_health.core.errors import ParseError
from repo_health.schemas.analysis import AnalysisResult

# Accepted wrappers: ```json ... ```, ```<any tag> ... ```, ``` ... ```, or none.
_FENCE = re.compile(r"^```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\r?\n?(.*?)\r?\n?```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """
    Trim whitespace and drop one surrounding markdown code fence, if present.
    Text without a complete fence comes back trimmed and otherwise untouched.
    """
    s = text.strip()
    m = _FENCE.match(s)
    if not m:
        return s
    return m.group(2).strip()


def parse_analysis_response(raw: str) -> AnalysisResult:
    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        raise ParseError("Model returned an empty response")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Model response is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            snippet=cleaned[:200],
        ) from e

    if not isinstance(data, dict):
        raise ParseError(
            f"Model response must be a JSON object, got {type(data).__name__}",
            snippet=cleaned[:200],
        )

    # only the pipeline may label a result as demo output
    data.pop("demo", None)

    # fields of the wrong shape fall back to neutral defaults instead of failing
    return AnalysisResult.model_validate(data)
