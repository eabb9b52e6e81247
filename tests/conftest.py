from __future__ import annotations

import itertools
from typing import Any, Callable

import pytest

from models import DiseaseTopic, Methodology, Paper, PublicationType, ResearchModality, StudyType

_ids = itertools.count(1)


@pytest.fixture
def make_paper() -> Callable[..., Paper]:
    """Factory for fully-populated papers; override any field by keyword."""

    def _make(**overrides: Any) -> Paper:
        fields: dict[str, Any] = {
            "id": f"live-{next(_ids):012x}",
            "title": "Semaglutide reduces CKD progression in type 2 diabetes",
            "url": "https://www.nature.com/articles/s41591-026-0001-x",
            "journal_or_conference": "Nature Medicine",
            "date": "2026-10-10",
            "authors": ["Smith J", "Doe A"],
            "topic": DiseaseTopic.CKD,
            "publication_type": PublicationType.PEER_REVIEWED,
            "study_type": StudyType.CLINICAL_TRIAL,
            "methodology": Methodology.STATISTICAL,
            "modality": ResearchModality.CLINICAL_DATA,
            "abstract_highlight": "Semaglutide slowed eGFR decline.",
            "drug_and_target": "Semaglutide (GLP-1R)",
            "context": "Live Feed Result",
            "validation_score": 100,
            "authors_verified": True,
        }
        fields.update(overrides)
        return Paper(**fields)

    return _make
