"""Claude Messages API with the server-side web search tool as a grounded backend."""

from __future__ import annotations

import logging
import os
from typing import Any

import anthropic

from models import Citation, Completion

CLAUDE_MAX_SEARCHES = int(os.getenv("CLAUDE_MAX_SEARCHES", "5"))

LOGGER = logging.getLogger(__name__)


def claude_grounded_completion(prompt: str, max_tokens: int = 4096) -> Completion:
    """Call Claude with web search enabled and collect the sources it used.

    Citations come from two places: ``web_search_tool_result`` blocks (every
    page the search returned) and the ``citations`` attached to text blocks
    (the passages Claude actually quoted, which carry a snippet).
    """
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is required")

    claude_model = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5")
    client = anthropic.Anthropic(api_key=api_key)

    LOGGER.debug("Calling Claude model=%s with web search", claude_model)
    response = client.messages.create(
        model=claude_model,
        max_tokens=max_tokens,
        messages=[{"role": "user", "content": prompt}],
        tools=[{"type": "web_search_20250305", "name": "web_search", "max_uses": CLAUDE_MAX_SEARCHES}],
    )

    text_parts: list[str] = []
    by_url: dict[str, Citation] = {}

    for block in response.content:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text_parts.append(block.text)
            for cite in getattr(block, "citations", None) or []:
                _merge_citation(by_url, _attr(cite, "url"), _attr(cite, "title"), _attr(cite, "cited_text"))
        elif block_type == "web_search_tool_result":
            results = getattr(block, "content", None)
            if not isinstance(results, list):
                # An error object instead of a result list.
                LOGGER.warning("Claude web search returned an error: %s", results)
                continue
            for result in results:
                _merge_citation(by_url, _attr(result, "url"), _attr(result, "title"), "")

    citations = list(by_url.values())
    LOGGER.info("Claude returned %s text blocks with %s citations", len(text_parts), len(citations))
    return Completion(text="".join(text_parts), citations=citations, grounded=True)


def _merge_citation(by_url: dict[str, Citation], url: str, title: str, snippet: str) -> None:
    if not url:
        return
    existing = by_url.get(url)
    if existing is None:
        by_url[url] = Citation(url=url, title=title, snippet=snippet)
        return
    by_url[url] = Citation(
        url=url,
        title=existing.title or title,
        snippet=" ".join(part for part in (existing.snippet, snippet) if part),
    )


def _attr(obj: Any, name: str) -> str:
    value = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
    return value.strip() if isinstance(value, str) else ""
