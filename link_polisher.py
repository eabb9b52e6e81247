"""On-demand replacement of hub links (TOC, issue index, search pages) with direct article links."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from completion_client import CompleteFn, complete
from models import Paper

LOGGER = logging.getLogger(__name__)

_HUB_PATH_MARKERS: tuple[str, ...] = ("/toc/", "/issue/", "/issues/", "/volume/", "/volumes/", "/current")
_INDEX_PATH_PREFIXES: tuple[str, ...] = ("/search", "/collection", "/browse")

# Hosts whose pages index many articles rather than being one.
_INDEX_HOSTS: frozenset[str] = frozenset({
    "scholar.google.com",
    "www.google.com",
    "google.com",
})
_INDEX_ROOTS: dict[str, tuple[str, ...]] = {
    "www.ncbi.nlm.nih.gov": ("/pmc", "/pubmed"),
    "europepmc.org": ("/article",),
}


def is_hub_url(url: str | None) -> bool:
    """True when ``url`` points at an index page rather than a specific article."""
    if not url:
        return True
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    path = (parsed.path or "/").lower()

    if host in _INDEX_HOSTS:
        return True
    if path in ("", "/"):
        # Journal home page, or a root search such as pubmed.ncbi.nlm.nih.gov/?term=...
        return True
    if any(marker in path for marker in _HUB_PATH_MARKERS):
        return True
    if path.startswith(_INDEX_PATH_PREFIXES):
        return True
    return path.rstrip("/") in _INDEX_ROOTS.get(host, ())


def _polish_prompt(paper: Paper) -> str:
    authors = ", ".join(paper.authors[:3]) if paper.authors else "unknown"
    return (
        "Find the direct article page or full-text PDF for this paper. Do not return a journal "
        "home page, table of contents, issue listing or search page.\n"
        f"Title: {paper.title}\n"
        f"Journal: {paper.journal_or_conference}\n"
        f"Authors: {authors}\n"
        f"Date: {paper.date}\n"
        "Reply with the single best URL."
    )


def polish_link(paper: Paper, complete_fn: CompleteFn = complete) -> str | None:
    """Return a direct link for ``paper``, or None when polishing failed.

    Callers keep the original URL on None.
    """
    try:
        completion = complete_fn(_polish_prompt(paper), grounding=True)
    except Exception as exc:  # broad: polishing is best-effort
        LOGGER.warning("Link polishing failed for %s: %s", paper.id, exc)
        return None

    for citation in completion.citations:
        if citation.url and not is_hub_url(citation.url):
            LOGGER.info("Polished link for %s: %s -> %s", paper.id, paper.url, citation.url)
            return citation.url

    LOGGER.info("No direct link found for %s among %s citations", paper.id, len(completion.citations))
    return None


def apply_polish(paper: Paper, url: str | None) -> Paper:
    """Return a copy with the polished URL, or ``paper`` unchanged when url is None."""
    if not url:
        return paper
    return paper.with_changes(url=url, is_polished=True)
