"""Coerce verified model records onto the fixed taxonomy and the date window."""

from __future__ import annotations

import logging
import re
import uuid
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, TypeVar
from urllib.parse import urlparse

from grounding import VerifiedRecord
from models import AgentProfile, DiseaseTopic, Methodology, Paper, PublicationType, ResearchModality, StudyType

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

# Downgraded (ungrounded) records lose this much trust.
UNVERIFIED_SCORE_PENALTY = 30

DEFAULT_TOPIC = DiseaseTopic.CVD
DEFAULT_PUBLICATION_TYPE = PublicationType.PEER_REVIEWED
DEFAULT_STUDY_TYPE = StudyType.PRE_CLINICAL
DEFAULT_METHODOLOGY = Methodology.STATISTICAL
DEFAULT_MODALITY = ResearchModality.OTHER

TOPIC_SYNONYMS: dict[str, DiseaseTopic] = {
    "cardiovascular": DiseaseTopic.CVD,
    "cardiovascular disease": DiseaseTopic.CVD,
    "heart failure": DiseaseTopic.CVD,
    "atherosclerosis": DiseaseTopic.CVD,
    "hypertension": DiseaseTopic.CVD,
    "chronic kidney disease": DiseaseTopic.CKD,
    "kidney": DiseaseTopic.CKD,
    "renal": DiseaseTopic.CKD,
    "dkd": DiseaseTopic.CKD,
    "steatohepatitis": DiseaseTopic.MASH,
    "mash/nash": DiseaseTopic.MASH,
    "nafld": DiseaseTopic.MASLD,
    "fatty liver": DiseaseTopic.MASLD,
    "type 2 diabetes": DiseaseTopic.DIABETES,
    "t2d": DiseaseTopic.DIABETES,
    "t2dm": DiseaseTopic.DIABETES,
    "diabetic": DiseaseTopic.DIABETES,
    "obese": DiseaseTopic.OBESITY,
    "weight loss": DiseaseTopic.OBESITY,
    "adiposity": DiseaseTopic.OBESITY,
}

PUBLICATION_TYPE_SYNONYMS: dict[str, PublicationType] = {
    "peer-reviewed": PublicationType.PEER_REVIEWED,
    "journal article": PublicationType.PEER_REVIEWED,
    "original research": PublicationType.PEER_REVIEWED,
    "research article": PublicationType.PEER_REVIEWED,
    "biorxiv": PublicationType.PREPRINT,
    "medrxiv": PublicationType.PREPRINT,
    "arxiv": PublicationType.PREPRINT,
    "systematic review": PublicationType.META_ANALYSIS,
    "meta analysis": PublicationType.META_ANALYSIS,
    "review": PublicationType.REVIEW_ARTICLE,
    "news": PublicationType.NEWS_ANALYSIS,
    "commentary": PublicationType.NEWS_ANALYSIS,
    "editorial": PublicationType.NEWS_ANALYSIS,
}

STUDY_TYPE_SYNONYMS: dict[str, StudyType] = {
    "rct": StudyType.CLINICAL_TRIAL,
    "trial": StudyType.CLINICAL_TRIAL,
    "randomized controlled trial": StudyType.CLINICAL_TRIAL,
    "human cohort": StudyType.HUMAN_COHORT,
    "cohort": StudyType.HUMAN_COHORT,
    "observational": StudyType.HUMAN_COHORT,
    "registry": StudyType.HUMAN_COHORT,
    "preclinical": StudyType.PRE_CLINICAL,
    "animal": StudyType.PRE_CLINICAL,
    "mouse": StudyType.PRE_CLINICAL,
    "in vitro": StudyType.PRE_CLINICAL,
    "in vivo": StudyType.PRE_CLINICAL,
    "in silico": StudyType.SIMULATED,
    "simulation": StudyType.SIMULATED,
    "computational": StudyType.SIMULATED,
}

METHODOLOGY_SYNONYMS: dict[str, Methodology] = {
    "ai": Methodology.AI_ML,
    "ml": Methodology.AI_ML,
    "machine learning": Methodology.AI_ML,
    "deep learning": Methodology.AI_ML,
    "artificial intelligence": Methodology.AI_ML,
    "lab": Methodology.LAB_EXPERIMENTAL,
    "experimental": Methodology.LAB_EXPERIMENTAL,
    "in vivo": Methodology.LAB_EXPERIMENTAL,
    "in vitro": Methodology.LAB_EXPERIMENTAL,
    "animal model": Methodology.LAB_EXPERIMENTAL,
    "organoid": Methodology.LAB_EXPERIMENTAL,
    "statistics": Methodology.STATISTICAL,
    "epidemiological": Methodology.STATISTICAL,
    "regression": Methodology.STATISTICAL,
}

MODALITY_SYNONYMS: dict[str, ResearchModality] = {
    "scrna-seq": ResearchModality.SINGLE_CELL,
    "single-cell": ResearchModality.SINGLE_CELL,
    "genomics": ResearchModality.GENETICS,
    "gwas": ResearchModality.GENETICS,
    "genetic": ResearchModality.GENETICS,
    "proteomic": ResearchModality.PROTEOMICS,
    "rna-seq": ResearchModality.TRANSCRIPTOMICS,
    "transcriptomic": ResearchModality.TRANSCRIPTOMICS,
    "metabolomic": ResearchModality.METABOLOMICS,
    "lipidomic": ResearchModality.LIPIDOMICS,
    "multiomics": ResearchModality.MULTI_OMICS,
    "multi-omic": ResearchModality.MULTI_OMICS,
    "electronic health records": ResearchModality.EHR,
    "mri": ResearchModality.IMAGING,
    "ct": ResearchModality.IMAGING,
    "echocardiography": ResearchModality.IMAGING,
    "clinical": ResearchModality.CLINICAL_DATA,
}

_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b. %d, %Y",
    "%Y-%m",
    "%B %Y",
    "%b %Y",
)


def coerce_enum(value: Any, enum_cls: type[E], synonyms: dict[str, E], default: E) -> E:
    """Total mapping from an untrusted string onto ``enum_cls``.

    Order: case-insensitive match on value or member name, exact synonym,
    synonym appearing as a whole word inside the value, then ``default``.
    """
    if not isinstance(value, str) or not value.strip():
        return default
    lowered = value.strip().lower()

    for member in enum_cls:
        if lowered in (str(member.value).lower(), member.name.lower()):
            return member

    if lowered in synonyms:
        return synonyms[lowered]

    for key, member in synonyms.items():
        if re.search(rf"(?<![a-z0-9]){re.escape(key)}(?![a-z0-9])", lowered):
            return member

    # A label like "Clinical Trial (Phase 2)" still carries an enum value.
    for member in enum_cls:
        if str(member.value).lower() in lowered:
            return member

    return default


def parse_record_date(value: Any) -> date | None:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()

    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def resolve_date(verified: VerifiedRecord, cutoff: date, today: date) -> date | None:
    """Return the record's date, or None when it falls outside the window.

    An unparseable date is accepted (as today) only when the current or the
    previous year appears in the title or snippet text.
    """
    parsed = parse_record_date(verified.record.get("date"))
    if parsed is None:
        evidence = verified.evidence_text
        trusted_years = (str(today.year), str(today.year - 1))
        if any(year in evidence for year in trusted_years):
            return today
        LOGGER.debug("Dropping undated record without a recent-year token: %s", verified.title)
        return None

    if parsed < cutoff:
        LOGGER.debug("Dropping record dated %s before cutoff %s: %s", parsed, cutoff, verified.title)
        return None
    return parsed


def _text(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _journal(record: dict[str, Any], url: str, grounded: bool) -> str:
    journal = record.get("journal") or record.get("journalOrConference")
    if isinstance(journal, str) and journal.strip():
        return journal.strip()
    if grounded and url:
        host = urlparse(url).hostname or ""
        return host.removeprefix("www.") or "Unknown source"
    return "Unknown source"


def new_paper_id(prefix: str = "live") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def normalize_record(
    verified: VerifiedRecord,
    *,
    agent: AgentProfile,
    cutoff: date,
    today: date | None = None,
    id_prefix: str = "live",
) -> Paper | None:
    """Build a Paper from a verified record, or None when out of the date window."""
    today = today or datetime.now(UTC).date()
    resolved = resolve_date(verified, cutoff, today)
    if resolved is None:
        return None

    record = verified.record
    score = agent.precision_score
    if not verified.grounded:
        score -= UNVERIFIED_SCORE_PENALTY

    return Paper(
        id=new_paper_id(id_prefix),
        title=verified.title,
        url=verified.url,
        journal_or_conference=_journal(record, verified.url, verified.grounded),
        date=resolved.isoformat(),
        authors=_string_list(record.get("authors")) or ["Unknown"],
        topic=coerce_enum(record.get("topic"), DiseaseTopic, TOPIC_SYNONYMS, DEFAULT_TOPIC),
        publication_type=coerce_enum(
            record.get("publicationType"), PublicationType, PUBLICATION_TYPE_SYNONYMS, DEFAULT_PUBLICATION_TYPE
        ),
        study_type=coerce_enum(record.get("studyType"), StudyType, STUDY_TYPE_SYNONYMS, DEFAULT_STUDY_TYPE),
        methodology=coerce_enum(record.get("methodology"), Methodology, METHODOLOGY_SYNONYMS, DEFAULT_METHODOLOGY),
        modality=coerce_enum(record.get("modality"), ResearchModality, MODALITY_SYNONYMS, DEFAULT_MODALITY),
        abstract_highlight=_text(record.get("abstractHighlight"), "Summary unavailable."),
        drug_and_target=_text(record.get("drugAndTarget"), "N/A"),
        context=_text(record.get("context"), "Live Feed Result"),
        validation_score=max(0, min(100, score)),
        authors_verified=verified.grounded,
        is_live=True,
        is_polished=False,
        affiliations=_string_list(record.get("affiliations")),
        funding=_text(record.get("funding"), ""),
        keywords=_string_list(record.get("keywords")),
    )


def normalize_records(
    verified: list[VerifiedRecord],
    *,
    agent: AgentProfile,
    cutoff: date,
    today: date | None = None,
    id_prefix: str = "live",
) -> list[Paper]:
    papers = [
        paper
        for item in verified
        if (paper := normalize_record(item, agent=agent, cutoff=cutoff, today=today, id_prefix=id_prefix))
        is not None
    ]
    LOGGER.info(
        "Normalizer[%s]: verified=%s in_window=%s cutoff=%s",
        agent.name,
        len(verified),
        len(papers),
        cutoff,
    )
    return papers
