from __future__ import annotations

import json
import re

from pydantic import ValidationError

from parley.models.profiles import ReplyPayload

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class ReplyFormatError(ValueError):
    """Provider output that does not match the reply payload shape."""


def summarize_validation_error(err: ValidationError) -> str:
    parts: list[str] = []
    for issue in err.errors():
        location = ".".join(str(piece) for piece in issue.get("loc", []))
        message = str(issue.get("msg", "validation error"))
        if location:
            parts.append(f"{location}: {message}")
        else:
            parts.append(message)
    return "\n".join(parts) if parts else str(err)


def _strip_fence(raw: str) -> str:
    text = raw.strip()
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text


def parse_reply(raw: str) -> str:
    """Validate raw provider output and return the reply text."""
    try:
        payload = json.loads(_strip_fence(raw))
    except (TypeError, ValueError) as exc:
        raise ReplyFormatError(f"reply is not valid JSON: {exc}") from exc

    try:
        return ReplyPayload.model_validate(payload).reply
    except ValidationError as exc:
        raise ReplyFormatError(summarize_validation_error(exc)) from exc


__all__ = ["ReplyFormatError", "parse_reply", "summarize_validation_error"]
