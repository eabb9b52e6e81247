"""CSV file sink for discovered papers."""

from __future__ import annotations

import csv
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from models import Paper
from swarm import title_fingerprint

CSV_OUTPUT_PATH = os.getenv("CSV_OUTPUT_PATH", "papers_feed.csv")

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS = [
    "id",
    "fingerprint",
    "title",
    "url",
    "journal_or_conference",
    "date",
    "authors",
    "topic",
    "publication_type",
    "study_type",
    "methodology",
    "modality",
    "abstract_highlight",
    "drug_and_target",
    "context",
    "validation_score",   # 0-100 trust heuristic from the finding agent
    "authors_verified",   # True only when grounded against a search citation
    "is_polished",        # URL replaced by the link polisher
    "created_at",
]


def _resolve(csv_path: str | None) -> Path:
    return Path(csv_path or CSV_OUTPUT_PATH)


def _existing_fingerprints(path: Path) -> set[str]:
    if not path.exists():
        return set()
    with path.open(newline="", encoding="utf-8") as fh:
        return {row.get("fingerprint", "") for row in csv.DictReader(fh)}


def paper_already_exists(paper: Paper, csv_path: str | None = None) -> bool:
    """Return True if a row with the same title fingerprint is already in the CSV."""
    return title_fingerprint(paper.title) in _existing_fingerprints(_resolve(csv_path))


def write_papers(papers: list[Paper], csv_path: str | None = None) -> int:
    """Append papers not already present (creating the file with a header if needed).

    Returns the number of rows written.
    """
    path = _resolve(csv_path)
    write_header = not path.exists() or path.stat().st_size == 0
    seen = _existing_fingerprints(path)

    rows: list[dict[str, Any]] = []
    for paper in papers:
        fingerprint = title_fingerprint(paper.title)
        if fingerprint in seen:
            LOGGER.info("Skipping existing paper: %s", paper.title)
            continue
        seen.add(fingerprint)
        rows.append(_row(paper, fingerprint))

    with path.open("a", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        if write_header:
            writer.writeheader()
        writer.writerows(rows)

    LOGGER.info("Wrote %s CSV rows to %s", len(rows), path)
    return len(rows)


def _row(paper: Paper, fingerprint: str) -> dict[str, Any]:
    return {
        "id": paper.id,
        "fingerprint": fingerprint,
        "title": paper.title,
        "url": paper.url or "",
        "journal_or_conference": paper.journal_or_conference,
        "date": paper.date,
        "authors": "; ".join(paper.authors),
        "topic": paper.topic.value,
        "publication_type": paper.publication_type.value,
        "study_type": paper.study_type.value,
        "methodology": paper.methodology.value,
        "modality": paper.modality.value,
        "abstract_highlight": _as_text(paper.abstract_highlight),
        "drug_and_target": _as_text(paper.drug_and_target, max_len=200),
        "context": _as_text(paper.context, max_len=200),
        "validation_score": paper.validation_score,
        "authors_verified": paper.authors_verified,
        "is_polished": paper.is_polished,
        "created_at": datetime.now(UTC).isoformat(),
    }


def _as_text(value: Any, max_len: int = 500) -> str:
    """Convert value to a stripped string, truncated to max_len chars."""
    s = value.strip() if isinstance(value, str) else ""
    if len(s) > max_len:
        return s[: max_len - 1] + "…"
    return s
