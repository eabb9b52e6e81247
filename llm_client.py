"""OpenAI client used for non-grounded fallback completions."""

from __future__ import annotations

import logging
import os

from openai import OpenAI

from models import Completion

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.1"))

LOGGER = logging.getLogger(__name__)

_FALLBACK_SYSTEM_PROMPT = (
    "You are a biomedical literature assistant without web access. "
    "Answer only with the JSON requested by the user. "
    "Leave the url field empty unless you are certain of it."
)


def ungrounded_completion(prompt: str) -> Completion:
    """Run a plain chat completion; the result never carries citations."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is required")

    client = OpenAI(api_key=api_key)
    LOGGER.info("Running non-grounded OpenAI completion model=%s", OPENAI_MODEL)

    response = client.chat.completions.create(
        model=OPENAI_MODEL,
        temperature=OPENAI_TEMPERATURE,
        messages=[
            {"role": "system", "content": _FALLBACK_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
    )

    content = response.choices[0].message.content
    if not content:
        raise RuntimeError("OpenAI returned an empty response")

    return Completion(text=content, citations=[], grounded=False)
