"""Cache-first entry point: filters in, typed paper records out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from agents import agents_for_variant
from cache import PaperCache, filter_fingerprint
from completion_client import CompleteFn, complete
from grounding import GROUNDING_OVERLAP_THRESHOLD, GROUNDING_POLICY
from models import AgentProfile, FilterSet, Paper
from swarm import FINGERPRINT_PREFIX_LEN, SWARM_THROTTLE_SECONDS, BatchCallback, run_swarm

LOGGER = logging.getLogger(__name__)

STATUS_CACHED = "cached"
STATUS_FRESH = "fresh"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"


@dataclass(slots=True)
class FeedResult:
    """Outcome of one refresh.

    ``status`` separates "every agent failed, try again" (failed) from "the
    filters matched nothing" (empty).
    """

    papers: list[Paper]
    status: str
    fingerprint: str
    failed_agents: list[str] = field(default_factory=list)

    @property
    def from_cache(self) -> bool:
        return self.status == STATUS_CACHED


def fetch_literature(
    filters: FilterSet,
    complete_fn: CompleteFn = complete,
    *,
    cache: PaperCache | None = None,
    agents: tuple[AgentProfile, ...] | list[AgentProfile] | None = None,
    parallel: bool = True,
    throttle_seconds: float = SWARM_THROTTLE_SECONDS,
    on_batch: BatchCallback | None = None,
    policy: str = GROUNDING_POLICY,
    threshold: float = GROUNDING_OVERLAP_THRESHOLD,
    prefix_len: int = FINGERPRINT_PREFIX_LEN,
    now: datetime | None = None,
) -> FeedResult:
    """Serve from cache when fresh; otherwise run the swarm and cache a non-empty result."""
    fingerprint = filter_fingerprint(filters.topics, filters.variant)

    if cache is not None:
        cached = cache.get(fingerprint)
        if cached is not None:
            if on_batch is not None and cached:
                on_batch("cache", list(cached))
            return FeedResult(papers=cached, status=STATUS_CACHED, fingerprint=fingerprint)

    swarm = run_swarm(
        filters,
        agents if agents is not None else agents_for_variant(filters.variant),
        complete_fn,
        parallel=parallel,
        throttle_seconds=throttle_seconds,
        on_batch=on_batch,
        policy=policy,
        threshold=threshold,
        prefix_len=prefix_len,
        now=now,
    )

    if swarm.papers:
        if cache is not None:
            cache.put(fingerprint, swarm.papers)
        status = STATUS_FRESH
    elif swarm.all_failed:
        status = STATUS_FAILED
    else:
        status = STATUS_EMPTY

    LOGGER.info("Refresh %s: status=%s papers=%s", fingerprint, status, len(swarm.papers))
    return FeedResult(
        papers=swarm.papers,
        status=status,
        fingerprint=fingerprint,
        failed_agents=swarm.failed_agents,
    )
