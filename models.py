"""Shared typed models for the discovery pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any


class DiseaseTopic(str, Enum):
    CVD = "CVD"
    CKD = "CKD"
    MASH = "MASH"
    NASH = "NASH"
    MASLD = "MASLD"
    DIABETES = "Diabetes"
    OBESITY = "Obesity"


class PublicationType(str, Enum):
    PREPRINT = "Preprint"
    PEER_REVIEWED = "Peer Reviewed"
    REVIEW_ARTICLE = "Review Article"
    META_ANALYSIS = "Meta-Analysis"
    NEWS_ANALYSIS = "News/Analysis"


class StudyType(str, Enum):
    CLINICAL_TRIAL = "Clinical Trial"
    HUMAN_COHORT = "Human Cohort (Non-RCT)"
    PRE_CLINICAL = "Pre-clinical"
    SIMULATED = "Simulated"


class Methodology(str, Enum):
    AI_ML = "AI/ML"
    LAB_EXPERIMENTAL = "Lab Experimental"
    STATISTICAL = "Statistical"


class ResearchModality(str, Enum):
    SINGLE_CELL = "Single Cell"
    GENETICS = "Genetics"
    PROTEOMICS = "Proteomics"
    TRANSCRIPTOMICS = "Transcriptomics"
    METABOLOMICS = "Metabolomics"
    LIPIDOMICS = "Lipidomics"
    MULTI_OMICS = "Multi-omics"
    EHR = "EHR"
    IMAGING = "Imaging"
    CLINICAL_DATA = "Clinical Data"
    OTHER = "Other"


@dataclass(frozen=True, slots=True)
class Citation:
    """One grounding source returned alongside a completion."""

    url: str
    title: str
    snippet: str = ""


@dataclass(frozen=True, slots=True)
class Completion:
    text: str
    citations: list[Citation] = field(default_factory=list)
    grounded: bool = True


@dataclass(frozen=True, slots=True)
class FilterSet:
    """User-selected filters that drive one discovery run.

    Empty ``topics`` means "no topic chosen"; the prompt builder substitutes a
    default broad set. ``variant`` selects the feed (live, ai, patent) and
    with it the cache TTL.
    """

    topics: tuple[DiseaseTopic, ...] = ()
    study_types: tuple[StudyType, ...] = tuple(StudyType)
    methodologies: tuple[Methodology, ...] = tuple(Methodology)
    cutoff: date | None = None
    variant: str = "live"


@dataclass(frozen=True, slots=True)
class AgentProfile:
    """A named query profile dispatched as one independent completion.

    ``document_kind`` ("papers" or "patents") sets what the prompt asks the
    model to collect from its search results.
    """

    name: str
    domains: tuple[str, ...] = ()
    include_anchors: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = ()
    natural_language: bool = False
    document_kind: str = "papers"
    precision_score: int = 90


@dataclass(frozen=True, slots=True)
class Paper:
    """Normalized paper record handed to the feed consumer."""

    id: str
    title: str
    journal_or_conference: str
    date: str
    authors: list[str]
    topic: DiseaseTopic
    publication_type: PublicationType
    study_type: StudyType
    methodology: Methodology
    modality: ResearchModality
    abstract_highlight: str
    drug_and_target: str
    context: str
    validation_score: int
    url: str | None = None
    authors_verified: bool = False
    is_live: bool = True
    is_polished: bool = False
    affiliations: list[str] = field(default_factory=list)
    funding: str = ""
    keywords: list[str] = field(default_factory=list)

    def with_changes(self, **changes: Any) -> Paper:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape stored in the cache."""
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "journalOrConference": self.journal_or_conference,
            "date": self.date,
            "authors": list(self.authors),
            "topic": self.topic.value,
            "publicationType": self.publication_type.value,
            "studyType": self.study_type.value,
            "methodology": self.methodology.value,
            "modality": self.modality.value,
            "abstractHighlight": self.abstract_highlight,
            "drugAndTarget": self.drug_and_target,
            "context": self.context,
            "validationScore": self.validation_score,
            "authorsVerified": self.authors_verified,
            "isLive": self.is_live,
            "isPolished": self.is_polished,
            "affiliations": list(self.affiliations),
            "funding": self.funding,
            "keywords": list(self.keywords),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Paper:
        """Rebuild a Paper from ``to_dict`` output.

        Raises KeyError/ValueError on malformed input; callers reading
        untrusted storage are expected to catch those.
        """
        return cls(
            id=data["id"],
            title=data["title"],
            url=data.get("url"),
            journal_or_conference=data.get("journalOrConference", ""),
            date=data["date"],
            authors=list(data.get("authors") or []),
            topic=DiseaseTopic(data["topic"]),
            publication_type=PublicationType(data["publicationType"]),
            study_type=StudyType(data["studyType"]),
            methodology=Methodology(data["methodology"]),
            modality=ResearchModality(data["modality"]),
            abstract_highlight=data.get("abstractHighlight", ""),
            drug_and_target=data.get("drugAndTarget", ""),
            context=data.get("context", ""),
            validation_score=int(data.get("validationScore", 0)),
            authors_verified=bool(data.get("authorsVerified", False)),
            is_live=bool(data.get("isLive", True)),
            is_polished=bool(data.get("isPolished", False)),
            affiliations=list(data.get("affiliations") or []),
            funding=data.get("funding") or "",
            keywords=list(data.get("keywords") or []),
        )
