"""Cross-check parsed model records against the completion's grounding citations.

Matching runs in priority order:

1. exact URL equality between the record's claimed ``url`` and a citation URL;
2. normalized-title containment in either direction;
3. token overlap: the share of record-title tokens (longer than two chars)
   found in the citation title or snippet, accepted at ``threshold``.

Under the ``strict`` policy unmatched records are dropped. Under ``lenient``
they are kept with ``authors_verified=False`` and a constructed search URL in
place of whatever link the model claimed.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote_plus

from models import Citation

STRICT = "strict"
LENIENT = "lenient"

GROUNDING_OVERLAP_THRESHOLD = float(os.getenv("GROUNDING_OVERLAP_THRESHOLD", "0.4"))
GROUNDING_POLICY = os.getenv("GROUNDING_POLICY", STRICT)

SCHOLAR_SEARCH_URL = "https://scholar.google.com/scholar?q="

# Substring matches on very short normalized titles are too loose to trust.
_MIN_CONTAINMENT_LEN = 12

LOGGER = logging.getLogger(__name__)

# Publisher and index names that search engines append to page titles.
_SEO_SUFFIXES: tuple[str, ...] = (
    "PubMed",
    "PMC",
    "NCBI",
    "National Library of Medicine",
    "bioRxiv",
    "medRxiv",
    "Nature",
    "Science",
    "NEJM",
    "New England Journal of Medicine",
    "JAMA",
    "JAMA Network",
    "The Lancet",
    "BMJ",
    "ScienceDirect",
    "Wiley Online Library",
    "Springer",
    "SpringerLink",
    "Cell Press",
    "ResearchGate",
    "Google Scholar",
    "Europe PMC",
    "Full Text",
    "Abstract",
    "View Article",
    "Home Page",
)
_SEO_SUFFIX_RE = re.compile(
    r"\s+[-|–—:]\s+(?:" + "|".join(re.escape(s) for s in _SEO_SUFFIXES) + r")\b[^|]*$",
    re.IGNORECASE,
)
_DOI_RE = re.compile(r"10\.\d{4,9}/[^\s\"'<>?#]+", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class VerifiedRecord:
    """A parsed record plus the outcome of grounding it."""

    record: dict[str, Any]
    title: str
    url: str
    grounded: bool
    citation: Citation | None = None

    @property
    def evidence_text(self) -> str:
        """Title and snippet text used by the date fallback in the normalizer."""
        snippet = self.citation.snippet if self.citation else ""
        return f"{self.title} {snippet} {self.record.get('abstractHighlight') or ''}"


def normalize_title(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def tokenize(value: str) -> set[str]:
    return {token for token in re.findall(r"[a-z0-9]+", value.lower()) if len(token) > 2}


def clean_web_title(title: str) -> str:
    """Strip publisher-site SEO suffixes such as `` - PubMed`` or `` | NEJM``."""
    cleaned = (title or "").strip()
    while True:
        stripped = _SEO_SUFFIX_RE.sub("", cleaned).strip()
        if stripped == cleaned or not stripped:
            break
        cleaned = stripped
    return cleaned


def extract_doi(*values: Any) -> str | None:
    """Return the first DOI found in the given strings, without trailing punctuation."""
    for value in values:
        if not isinstance(value, str):
            continue
        match = _DOI_RE.search(value)
        if match:
            return match.group(0).rstrip(".,;)]}")
    return None


def citation_doi(record: dict[str, Any], citation: Citation) -> str | None:
    """DOI backed by the citation's URL or snippet.

    A DOI the model only claims in its own ``doi``/``url`` fields is kept
    only when the citation repeats it.
    """
    evidence = f"{citation.url} {citation.snippet}".lower()
    claimed = extract_doi(record.get("doi"), record.get("url"))
    if claimed and claimed.lower() in evidence:
        return claimed
    return extract_doi(citation.url, citation.snippet)


def scholar_search_url(title: str) -> str:
    return SCHOLAR_SEARCH_URL + quote_plus(title)


def overlap_score(record_title: str, citation: Citation) -> float:
    record_tokens = tokenize(record_title)
    if not record_tokens:
        return 0.0
    citation_tokens = tokenize(f"{citation.title} {citation.snippet}")
    return len(record_tokens & citation_tokens) / len(record_tokens)


def match_citation(
    record: dict[str, Any],
    citations: list[Citation],
    threshold: float = GROUNDING_OVERLAP_THRESHOLD,
) -> Citation | None:
    """Find the citation supporting a record, or None."""
    claimed_url = record.get("url") if isinstance(record.get("url"), str) else ""
    claimed_title = record.get("title") if isinstance(record.get("title"), str) else ""

    if claimed_url:
        for citation in citations:
            if citation.url == claimed_url.strip():
                return citation

    wanted = normalize_title(claimed_title)
    if wanted:
        for citation in citations:
            candidate = normalize_title(citation.title)
            if not candidate:
                continue
            if candidate == wanted:
                return citation
            if min(len(candidate), len(wanted)) >= _MIN_CONTAINMENT_LEN and (
                wanted in candidate or candidate in wanted
            ):
                return citation

    best: Citation | None = None
    best_score = 0.0
    for citation in citations:
        score = overlap_score(claimed_title, citation)
        if score >= threshold and score > best_score:
            best, best_score = citation, score
    return best


def verify_records(
    records: list[dict[str, Any]],
    citations: list[Citation],
    policy: str = GROUNDING_POLICY,
    threshold: float = GROUNDING_OVERLAP_THRESHOLD,
) -> list[VerifiedRecord]:
    """Ground each record; with no citations nothing can be verified."""
    verified: list[VerifiedRecord] = []
    dropped = 0

    for record in records:
        citation = match_citation(record, citations, threshold) if citations else None

        if citation is not None:
            title = clean_web_title(citation.title) or str(record.get("title") or "").strip()
            doi = citation_doi(record, citation)
            url = f"https://doi.org/{doi}" if doi else citation.url
            verified.append(VerifiedRecord(record=record, title=title, url=url, grounded=True, citation=citation))
            continue

        title = str(record.get("title") or "").strip()
        if policy == LENIENT and title:
            verified.append(VerifiedRecord(record=record, title=title, url=scholar_search_url(title), grounded=False))
        else:
            dropped += 1

    LOGGER.info(
        "Grounding: records=%s citations=%s grounded=%s downgraded=%s dropped=%s",
        len(records),
        len(citations),
        sum(1 for v in verified if v.grounded),
        sum(1 for v in verified if not v.grounded),
        dropped,
    )
    return verified
