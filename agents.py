"""Swarm agent profiles per feed variant.

Order matters: the orchestrator deduplicates first-occurrence-wins in this
order, so the domain-restricted "Sniper" agents come before the broad
"Trawler" and their higher validation score is the one kept.
"""

from __future__ import annotations

from models import AgentProfile

_NOISE_EXCLUSIONS: tuple[str, ...] = ("news", "blog")

# Statistical markers that filter out editorials and commentary.
_STRUCTURAL_ANCHORS: tuple[str, ...] = ("p-value", "hazard ratio", "95% CI", "randomized")

LIVE_AGENTS: tuple[AgentProfile, ...] = (
    AgentProfile(
        name="Sniper-General",
        domains=("nature.com", "science.org", "cell.com", "pnas.org"),
        precision_score=100,
    ),
    AgentProfile(
        name="Sniper-Clinical",
        domains=("nejm.org", "thelancet.com", "jamanetwork.com", "bmj.com"),
        precision_score=100,
    ),
    AgentProfile(
        name="Sniper-Specialty",
        domains=("ahajournals.org", "diabetesjournals.org", "embo.org"),
        precision_score=100,
    ),
    AgentProfile(
        name="Sniper-Preprint",
        domains=("biorxiv.org", "medrxiv.org"),
        precision_score=100,
    ),
    AgentProfile(
        name="Trawler-Semantic",
        include_anchors=_STRUCTURAL_ANCHORS,
        exclude_keywords=_NOISE_EXCLUSIONS,
        natural_language=True,
        precision_score=90,
    ),
)

AI_AGENTS: tuple[AgentProfile, ...] = (
    AgentProfile(
        name="Sniper-AI",
        domains=("nature.com", "arxiv.org", "biorxiv.org", "medrxiv.org"),
        include_anchors=("machine learning", "deep learning", "foundation model"),
        precision_score=100,
    ),
    AgentProfile(
        name="Trawler-AI",
        include_anchors=("machine learning", "artificial intelligence"),
        exclude_keywords=_NOISE_EXCLUSIONS,
        natural_language=True,
        precision_score=90,
    ),
)

PATENT_AGENTS: tuple[AgentProfile, ...] = (
    AgentProfile(
        name="Patent-Hub",
        domains=("patents.google.com", "patentscope.wipo.int"),
        document_kind="patents",
        precision_score=95,
    ),
)

_AGENTS_BY_VARIANT: dict[str, tuple[AgentProfile, ...]] = {
    "live": LIVE_AGENTS,
    "ai": AI_AGENTS,
    "patent": PATENT_AGENTS,
}


def agents_for_variant(variant: str) -> tuple[AgentProfile, ...]:
    """Return the swarm for a feed variant; unknown variants use the live swarm."""
    return _AGENTS_BY_VARIANT.get(variant, LIVE_AGENTS)
