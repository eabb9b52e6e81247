"""Consumer-side helpers over a paper list: merge into an existing feed, filter, sort, count."""

from __future__ import annotations

import re
from typing import Iterable

from models import DiseaseTopic, Methodology, Paper, PublicationType, StudyType

# Substring title matches are only trusted above this normalized length,
# so short acronym-like titles do not swallow each other.
_MIN_SUBSTRING_TITLE_LEN = 15


def _normalize(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def _first_author(paper: Paper) -> str:
    return _normalize(paper.authors[0]) if paper.authors else ""


def is_same_paper(a: Paper, b: Paper) -> bool:
    """Title match (equal, or substring when both are long enough) confirmed by first author.

    When either first author is unknown the title match alone decides.
    """
    title_a, title_b = _normalize(a.title), _normalize(b.title)
    title_match = title_a == title_b or (
        len(title_a) > _MIN_SUBSTRING_TITLE_LEN
        and len(title_b) > _MIN_SUBSTRING_TITLE_LEN
        and (title_a in title_b or title_b in title_a)
    )
    if not title_match:
        return False

    author_a, author_b = _first_author(a), _first_author(b)
    if not author_a or not author_b:
        return True
    return author_a == author_b or author_a in author_b or author_b in author_a


def merge_into_feed(existing: list[Paper], new: list[Paper]) -> list[Paper]:
    """Prepend the new papers that are not already in the feed."""
    fresh = [paper for paper in new if not any(is_same_paper(paper, old) for old in existing)]
    return fresh + list(existing)


def filter_papers(
    papers: Iterable[Paper],
    topics: Iterable[DiseaseTopic] | None = None,
    study_types: Iterable[StudyType] | None = None,
    methodologies: Iterable[Methodology] | None = None,
) -> list[Paper]:
    """Keep papers matching every given facet; a facet of None is not applied."""
    topic_set = set(topics) if topics is not None else None
    study_set = set(study_types) if study_types is not None else None
    method_set = set(methodologies) if methodologies is not None else None
    return [
        paper
        for paper in papers
        if (topic_set is None or paper.topic in topic_set)
        and (study_set is None or paper.study_type in study_set)
        and (method_set is None or paper.methodology in method_set)
    ]


def sort_papers(papers: Iterable[Paper], by: str = "date") -> list[Paper]:
    """Sort newest first, or by validation score then date when ``by="relevance"``."""
    if by == "relevance":
        return sorted(papers, key=lambda p: (p.validation_score, p.date), reverse=True)
    if by != "date":
        raise ValueError(f"Unknown sort key: {by!r}")
    return sorted(papers, key=lambda p: p.date, reverse=True)


def feed_stats(papers: list[Paper]) -> dict[str, object]:
    topic_counts = {topic.value: 0 for topic in DiseaseTopic}
    for paper in papers:
        topic_counts[paper.topic.value] += 1

    return {
        "total": len(papers),
        "peer_reviewed": sum(1 for p in papers if p.publication_type is PublicationType.PEER_REVIEWED),
        "preprints": sum(1 for p in papers if p.publication_type is PublicationType.PREPRINT),
        "clinical_trials": sum(1 for p in papers if p.study_type is StudyType.CLINICAL_TRIAL),
        "ai_ml": sum(1 for p in papers if p.methodology is Methodology.AI_ML),
        "by_topic": {name: count for name, count in topic_counts.items() if count > 0},
    }
