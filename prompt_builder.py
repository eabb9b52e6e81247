"""Search directive construction for each swarm agent (no LLM calls)."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from models import AgentProfile, DiseaseTopic, FilterSet, Methodology, PublicationType, ResearchModality, StudyType

DEFAULT_CUTOFF_DAYS = 30

# What each document kind asks the model to collect: mission, keep rule,
# skip rule, "journal" hint and the natural-language query lead.
_DOCUMENT_KINDS: dict[str, dict[str, str]] = {
    "papers": {
        "mission": "recent biomedical literature\n(peer-reviewed papers, clinical trials and preprints)",
        "keep": "identify scientific papers, clinical trials or preprints only.",
        "skip": "Skip news articles, press releases, editorials and blog posts.",
        "journal": "journal or conference name",
        "lead": "latest research papers study",
    },
    "patents": {
        "mission": "recent biomedical patents\n(granted patents and published patent applications)",
        "keep": "identify patents and published patent applications only.",
        "skip": "Skip news articles, company press releases and the scientific papers a patent cites.",
        "journal": "patent office and number, e.g. USPTO US 12,345,678 B2",
        "lead": "latest patent applications",
    },
}

# Static clinical synonym table. MASH, NASH and MASLD share one bucket since
# the literature still uses all three names for the same disease spectrum.
_LIVER_SYNONYMS: tuple[str, ...] = ("MASH", "NASH", "MASLD", "steatohepatitis", "fatty liver")

TOPIC_SYNONYMS: dict[DiseaseTopic, tuple[str, ...]] = {
    DiseaseTopic.CVD: ("CVD", "cardiovascular disease", "heart failure", "atherosclerosis"),
    DiseaseTopic.CKD: ("CKD", "chronic kidney disease", "diabetic kidney disease"),
    DiseaseTopic.MASH: _LIVER_SYNONYMS,
    DiseaseTopic.NASH: _LIVER_SYNONYMS,
    DiseaseTopic.MASLD: _LIVER_SYNONYMS,
    DiseaseTopic.DIABETES: ("Diabetes", "type 2 diabetes", "T2D", "glycemic control"),
    DiseaseTopic.OBESITY: ("Obesity", "weight loss", "GLP-1", "adiposity"),
}

# Substituted when the caller selects no topic at all.
DEFAULT_BROAD_TOPICS: tuple[DiseaseTopic, ...] = (
    DiseaseTopic.CVD,
    DiseaseTopic.DIABETES,
    DiseaseTopic.OBESITY,
    DiseaseTopic.NASH,
)

METHODOLOGY_SYNONYMS: dict[Methodology, tuple[str, ...]] = {
    Methodology.AI_ML: ("machine learning", "deep learning", "artificial intelligence"),
    Methodology.LAB_EXPERIMENTAL: ("in vivo", "in vitro", "animal model", "organoid"),
    Methodology.STATISTICAL: ("cohort analysis", "regression", "hazard ratio"),
}


def default_cutoff(now: datetime | None = None, days: int = DEFAULT_CUTOFF_DAYS) -> date:
    now = now or datetime.now(UTC)
    return (now - timedelta(days=days)).date()


def _kind(profile: AgentProfile) -> dict[str, str]:
    return _DOCUMENT_KINDS.get(profile.document_kind, _DOCUMENT_KINDS["papers"])


def resolve_topics(filters: FilterSet) -> tuple[DiseaseTopic, ...]:
    return filters.topics or DEFAULT_BROAD_TOPICS


def is_broad_mode(filters: FilterSet) -> bool:
    """True when every topic is active, i.e. the user expressed no topic preference."""
    return set(filters.topics) == set(DiseaseTopic)


def expand_topics(topics: tuple[DiseaseTopic, ...]) -> list[str]:
    """Flatten topics into an ordered, de-duplicated list of search terms."""
    terms: list[str] = []
    for topic in topics:
        for term in TOPIC_SYNONYMS.get(topic, (topic.value,)):
            if term not in terms:
                terms.append(term)
    return terms


def build_search_query(profile: AgentProfile, filters: FilterSet) -> str:
    """Build the machine-checkable search query for one agent."""
    cutoff = (filters.cutoff or default_cutoff()).isoformat()
    terms = expand_topics(resolve_topics(filters))

    if profile.natural_language:
        parts = [f"{_kind(profile)['lead']} {', '.join(terms)} published after {cutoff}"]
        parts.extend(_anchor_clause(profile))
        parts.extend(f"-{kw}" for kw in profile.exclude_keywords)
        return " ".join(parts)

    parts = []
    if profile.domains:
        parts.append("(" + " OR ".join(f"site:{domain}" for domain in profile.domains) + ")")
    parts.append("(" + " OR ".join(f'"{term}"' for term in terms) + ")")
    parts.extend(_anchor_clause(profile))
    parts.extend(f"-{kw}" for kw in profile.exclude_keywords)
    parts.append(f"after:{cutoff}")
    return " ".join(parts)


def _anchor_clause(profile: AgentProfile) -> list[str]:
    if not profile.include_anchors:
        return []
    return ["(" + " OR ".join(f'"{anchor}"' for anchor in profile.include_anchors) + ")"]


def _scope_lines(filters: FilterSet) -> list[str]:
    lines: list[str] = []
    if is_broad_mode(filters):
        lines.append(
            "- Topic scope is BROAD: accept any of the listed disease areas; do not require a "
            "paper to cover more than one of them."
        )
    else:
        topics = resolve_topics(filters)
        lines.append(f"- Focus on these disease areas: {', '.join(t.value for t in topics)}.")

    if filters.study_types and set(filters.study_types) != set(StudyType):
        lines.append(f"- Only include study types: {', '.join(s.value for s in filters.study_types)}.")

    if filters.methodologies and set(filters.methodologies) != set(Methodology):
        described = []
        for methodology in filters.methodologies:
            synonyms = METHODOLOGY_SYNONYMS.get(methodology, ())
            described.append(f"{methodology.value} ({', '.join(synonyms)})" if synonyms else methodology.value)
        lines.append(f"- Only include methodologies: {'; '.join(described)}.")
    return lines


def _enum_choices(enum_cls: type) -> str:
    return " | ".join(member.value for member in enum_cls)


def build_prompt(profile: AgentProfile, filters: FilterSet) -> str:
    """Combine mission statement, search query and output schema into one prompt."""
    query = build_search_query(profile, filters)
    cutoff = (filters.cutoff or default_cutoff()).isoformat()
    scope = "\n".join(_scope_lines(filters))
    kind = _kind(profile)

    return f"""You are the {profile.name} agent. Your goal is to find {kind['mission']}
published on or after {cutoff}.

INSTRUCTIONS:
1. Run a web search for exactly this query: `{query}`
2. From the search results, {kind['keep']}
   {kind['skip']}
{scope}
3. The "url" field MUST be copied exactly from one of the search results.
4. Include the DOI in "doi" when the article shows one; otherwise leave it empty.
5. Classify each paper using only the allowed values below.
   - "AI", "machine learning" -> methodology "AI/ML"
   - "trial", "RCT" -> studyType "Clinical Trial"
   - bioRxiv / medRxiv -> publicationType "Preprint"

Respond with a JSON array inside a ```json code block following this schema:
[
  {{
    "url": "exact URL from a search result",
    "doi": "10.xxxx/... or empty",
    "title": "full academic title",
    "journal": "{kind['journal']}",
    "date": "YYYY-MM-DD",
    "authors": ["Author 1", "et al."],
    "topic": "{_enum_choices(DiseaseTopic)}",
    "publicationType": "{_enum_choices(PublicationType)}",
    "studyType": "{_enum_choices(StudyType)}",
    "methodology": "{_enum_choices(Methodology)}",
    "modality": "{_enum_choices(ResearchModality)}",
    "abstractHighlight": "brief 15-word summary",
    "drugAndTarget": "Drug (Target) or N/A",
    "context": "why it matters, max 10 words"
  }}
]
"""
