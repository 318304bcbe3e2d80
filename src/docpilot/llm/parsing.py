"""Helpers for pulling structured data out of free-form model output."""

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def extract_json_object(text: str) -> dict | None:
    """Return the first JSON object embedded in ``text``.

    Tolerates Markdown code fences and commentary before or after the
    object. Returns None when no object can be decoded.
    """
    if not text:
        return None
    cleaned = _FENCE.sub("", text).strip()
    decoder = json.JSONDecoder()
    start = cleaned.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = cleaned.find("{", start + 1)
    logger.debug("No JSON object found in model output: %r", text[:200])
    return None
