"""Perplexity API client: web-grounded completions with search citations."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from models import Citation, Completion

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar-pro")
PERPLEXITY_TEMPERATURE = float(os.getenv("PERPLEXITY_TEMPERATURE", "0.1"))
REQUEST_TIMEOUT_SECONDS = 90

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a biomedical literature scout. Search the web, then answer only with the "
    "JSON requested by the user. Never invent URLs; copy them from your search results."
)


def grounded_completion(prompt: str) -> Completion:
    """Run one web-grounded Perplexity completion.

    Raises RuntimeError when the key is missing or the response is malformed,
    and requests.RequestException on transport/HTTP errors. Retrying is the
    caller's job.
    """
    api_key = os.getenv("PERPLEXITY_API_KEY")
    if not api_key:
        raise RuntimeError("PERPLEXITY_API_KEY environment variable is required")

    payload = {
        "model": PERPLEXITY_MODEL,
        "temperature": PERPLEXITY_TEMPERATURE,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    LOGGER.debug("Calling Perplexity model=%s prompt_chars=%s", PERPLEXITY_MODEL, len(prompt))
    response = requests.post(
        PERPLEXITY_API_URL,
        headers=headers,
        json=payload,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    body = response.json()

    try:
        text = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError(f"Unexpected Perplexity response shape: {body}") from exc

    citations = parse_citations(body)
    LOGGER.info("Perplexity returned %s chars with %s citations", len(text or ""), len(citations))
    return Completion(text=text or "", citations=citations, grounded=True)


def parse_citations(body: dict[str, Any]) -> list[Citation]:
    """Collect citations from ``search_results``, falling back to bare ``citations`` URLs."""
    citations: list[Citation] = []
    seen: set[str] = set()

    for item in body.get("search_results") or []:
        if not isinstance(item, dict):
            continue
        url = _as_str(item.get("url"))
        if not url or url in seen:
            continue
        seen.add(url)
        citations.append(
            Citation(
                url=url,
                title=_as_str(item.get("title")) or "",
                snippet=_as_str(item.get("snippet")) or "",
            )
        )

    # Older responses only carry a list of URLs without titles.
    for url in body.get("citations") or []:
        url = _as_str(url)
        if not url or url in seen:
            continue
        seen.add(url)
        citations.append(Citation(url=url, title=""))

    return citations


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
