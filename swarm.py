"""Swarm orchestration: dispatch agents, stream per-agent batches, merge and dedupe."""

from __future__ import annotations

import logging
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Callable

from completion_client import CompleteFn, complete
from grounding import GROUNDING_OVERLAP_THRESHOLD, GROUNDING_POLICY, verify_records
from models import AgentProfile, FilterSet, Paper
from normalizer import normalize_records
from prompt_builder import build_prompt, default_cutoff
from response_parser import parse_json_array

FINGERPRINT_PREFIX_LEN = int(os.getenv("FINGERPRINT_PREFIX_LEN", "20"))
SWARM_THROTTLE_SECONDS = float(os.getenv("SWARM_THROTTLE_SECONDS", "0.5"))

LOGGER = logging.getLogger(__name__)

BatchCallback = Callable[[str, list[Paper]], None]


@dataclass(slots=True)
class AgentResult:
    agent: AgentProfile
    papers: list[Paper] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class SwarmResult:
    papers: list[Paper]
    agent_results: list[AgentResult]

    @property
    def failed_agents(self) -> list[str]:
        return [result.agent.name for result in self.agent_results if result.failed]

    @property
    def all_failed(self) -> bool:
        return bool(self.agent_results) and all(result.failed for result in self.agent_results)


def title_fingerprint(title: str, prefix_len: int = FINGERPRINT_PREFIX_LEN) -> str:
    """Lowercase, strip non-alphanumerics and keep the first ``prefix_len`` chars."""
    return re.sub(r"[^a-z0-9]", "", title.lower())[:prefix_len]


def dedupe_papers(papers: list[Paper], prefix_len: int = FINGERPRINT_PREFIX_LEN) -> list[Paper]:
    """Keep the first paper per title fingerprint, preserving input order."""
    seen: set[str] = set()
    unique: list[Paper] = []
    for paper in papers:
        fingerprint = title_fingerprint(paper.title, prefix_len) or paper.id
        if fingerprint in seen:
            continue
        seen.add(fingerprint)
        unique.append(paper)
    return unique


def run_agent(
    agent: AgentProfile,
    filters: FilterSet,
    complete_fn: CompleteFn = complete,
    *,
    policy: str = GROUNDING_POLICY,
    threshold: float = GROUNDING_OVERLAP_THRESHOLD,
    today: date | None = None,
) -> list[Paper]:
    """Run one agent end to end.

    Completion errors propagate to the caller. A completion that only came
    from the no-tool fallback raises RuntimeError too: the grounded search
    was unavailable, which is a failure rather than an empty result.
    """
    cutoff = filters.cutoff or default_cutoff()
    prompt = build_prompt(agent, filters)

    completion = complete_fn(prompt, grounding=True)
    records = parse_json_array(completion.text)

    if not completion.grounded:
        raise RuntimeError(
            f"Grounded search unavailable for {agent.name}; discarded {len(records)} unverifiable records"
        )
    if not completion.citations:
        LOGGER.warning("Agent %s: %s records without citations, discarding", agent.name, len(records))
        return []

    verified = verify_records(records, completion.citations, policy=policy, threshold=threshold)
    return normalize_records(verified, agent=agent, cutoff=cutoff, today=today, id_prefix=filters.variant)


def _safe_run_agent(agent: AgentProfile, run: Callable[[AgentProfile], list[Paper]]) -> AgentResult:
    try:
        return AgentResult(agent=agent, papers=run(agent))
    except Exception as exc:  # broad: a failed agent yields zero results, not a failed swarm
        LOGGER.exception("Agent %s failed: %s", agent.name, exc)
        return AgentResult(agent=agent, error=str(exc))


def run_swarm(
    filters: FilterSet,
    agents: tuple[AgentProfile, ...] | list[AgentProfile],
    complete_fn: CompleteFn = complete,
    *,
    parallel: bool = True,
    throttle_seconds: float = SWARM_THROTTLE_SECONDS,
    on_batch: BatchCallback | None = None,
    policy: str = GROUNDING_POLICY,
    threshold: float = GROUNDING_OVERLAP_THRESHOLD,
    prefix_len: int = FINGERPRINT_PREFIX_LEN,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
    max_workers: int | None = None,
) -> SwarmResult:
    """Run every agent against the same filters and merge their results.

    Each agent's batch is handed to ``on_batch`` as soon as it completes. In
    parallel mode batches arrive in completion order; in sequential mode they
    arrive in declaration order with ``throttle_seconds`` between calls.

    The merge always walks agents in declaration order, so when two agents
    return the same paper the earlier (higher-precision) agent's copy wins.
    """
    now = now or datetime.now(UTC)
    if filters.cutoff is None:
        filters = replace(filters, cutoff=default_cutoff(now))
    today = now.date()

    def run(agent: AgentProfile) -> list[Paper]:
        return run_agent(agent, filters, complete_fn, policy=policy, threshold=threshold, today=today)

    results: dict[int, AgentResult] = {}
    LOGGER.info("Launching swarm: agents=%s parallel=%s cutoff=%s", len(agents), parallel, filters.cutoff)

    if parallel and len(agents) > 1:
        with ThreadPoolExecutor(max_workers=max_workers or len(agents)) as executor:
            futures = {executor.submit(_safe_run_agent, agent, run): index for index, agent in enumerate(agents)}
            for future in as_completed(futures):
                result = future.result()
                results[futures[future]] = result
                _deliver(result, on_batch)
    else:
        for index, agent in enumerate(agents):
            if index > 0 and throttle_seconds > 0:
                sleep(throttle_seconds)
            result = _safe_run_agent(agent, run)
            results[index] = result
            _deliver(result, on_batch)

    ordered = [results[index] for index in range(len(agents))]
    merged = dedupe_papers([paper for result in ordered for paper in result.papers], prefix_len)
    merged.sort(key=lambda paper: paper.date, reverse=True)

    swarm = SwarmResult(papers=merged, agent_results=ordered)
    LOGGER.info(
        "Swarm complete: raw=%s unique=%s failed_agents=%s",
        sum(len(result.papers) for result in ordered),
        len(merged),
        swarm.failed_agents,
    )
    return swarm


def _deliver(result: AgentResult, on_batch: BatchCallback | None) -> None:
    LOGGER.info("Agent %s finished: papers=%s failed=%s", result.agent.name, len(result.papers), result.failed)
    if on_batch is not None and result.papers:
        on_batch(result.agent.name, list(result.papers))
