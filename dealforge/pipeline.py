"""
pipeline.py
-----------
One call from deal text to model output:

    text ──► [NLU guess] ──► resolve_lbo ──► run_model ──► result bundle
"""

import logging

from dealforge.model.lbo_engine import run_model
from dealforge.resolution.resolver import resolve_lbo

logger = logging.getLogger(__name__)


def build_lbo_model(text: str | None, nlu_client=None) -> dict:
    """
    Resolve the deal described in `text` and run the LBO model on it.

    `nlu_client` is anything with a `parse(text) -> dict | None` method
    (normally `NLUClient`); without one, resolution is regex + defaults only.

    Returns the run_model() bundle plus "assumptions" (the guaranteed record)
    and "external_guess" (what the NLU call returned, or None).
    """
    guess = nlu_client.parse(text) if nlu_client is not None and text else None
    if nlu_client is not None and guess is None:
        logger.info("no usable NLU guess; resolving from text and defaults")

    assumptions = resolve_lbo(text, external_guess=guess)
    result = run_model(assumptions)
    result["assumptions"] = assumptions
    result["external_guess"] = guess
    return result
