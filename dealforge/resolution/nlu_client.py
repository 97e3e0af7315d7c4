"""
nlu_client.py
-------------
Optional language-model read of a deal description.

The result is a best-effort guess: a dict of field -> value, or None when the
call fails, times out, or returns something that is not a JSON object.  The
resolver treats both the same way, so nothing here is allowed to raise on a
bad response.
"""

import json
import logging
import re

import anthropic

from dealforge.config import NLUSettings
from dealforge.model.assumptions import FieldCatalog, ValueKind, build_lbo_catalog

logger = logging.getLogger(__name__)


UNIT_HINTS = {
    ValueKind.MONEY:    "number, $ millions",
    ValueKind.RATIO:    "number, multiple of EBITDA (8.5 for 8.5x)",
    ValueKind.PERCENT:  "number, decimal (0.25 for 25%)",
    ValueKind.COUNT:    "integer",
    ValueKind.TEXT:     "string",
    ValueKind.SCHEDULE: "list of decimals, year 1 first",
}

FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def build_prompt(catalog: FieldCatalog) -> str:
    lines = [
        f"Extract {catalog.deal_type} assumptions from the deal description below.",
        "Return a single JSON object using only these keys:",
        "",
    ]
    for spec in catalog:
        if spec.derived_only:
            continue
        lines.append(f'  "{spec.name}": {UNIT_HINTS[spec.kind]}. {spec.description}')
    lines += [
        "",
        "Include a key only when the description states or clearly implies its value.",
        "Do not fill in industry defaults. Return ONLY the JSON object, no markdown, no explanation.",
    ]
    return "\n".join(lines)


def parse_json_object(response_text: str) -> dict | None:
    """Strip markdown fences and decode; None unless the payload is an object."""
    cleaned = FENCE.sub("", response_text.strip()).strip()
    if not cleaned:
        return None
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("NLU response is not valid JSON: %s", e)
        return None
    if not isinstance(payload, dict):
        logger.warning("NLU response is %s, expected an object", type(payload).__name__)
        return None
    return payload


class NLUClient:
    """Thin wrapper around the Anthropic Messages API."""

    def __init__(self, settings: NLUSettings, catalog: FieldCatalog | None = None, client=None):
        self.settings = settings
        self.catalog = catalog or build_lbo_catalog()
        self.prompt = build_prompt(self.catalog)
        self.client = client or anthropic.Anthropic(
            api_key=settings.api_key, timeout=settings.timeout_seconds)

    @classmethod
    def from_settings(cls, settings: NLUSettings | None = None, **kwargs) -> "NLUClient | None":
        settings = settings or NLUSettings.from_env()
        if not settings.enabled:
            logger.info("no Anthropic API key configured; NLU disabled")
            return None
        return cls(settings, **kwargs)

    def parse(self, text: str) -> dict | None:
        if not text or not text.strip():
            return None
        try:
            message = self.client.messages.create(
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                temperature=0.0,
                messages=[{"role": "user", "content": f"{self.prompt}\n\nDescription:\n{text}"}],
            )
        except anthropic.APIError as e:
            logger.warning("NLU call failed: %s", e)
            return None

        response_text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        guess = parse_json_object(response_text)
        if guess is not None:
            logger.info("NLU returned %d fields", len(guess))
        return guess
