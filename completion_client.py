"""Groundable completion service: provider dispatch, retry and no-tool fallback."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import replace
from typing import Callable, Protocol

import anthropic_client
import llm_client
import perplexity_client
from models import Completion
from retry import DEFAULT_RETRY_POLICY, RetryPolicy, call_with_retry

COMPLETION_PROVIDER = os.getenv("COMPLETION_PROVIDER", "perplexity")

LOGGER = logging.getLogger(__name__)


class CompleteFn(Protocol):
    def __call__(self, prompt: str, grounding: bool = True) -> Completion: ...


class CompletionError(RuntimeError):
    """Raised when both the grounded calls and the fallback are exhausted."""


def _grounded_backend(provider: str) -> Callable[[str], Completion]:
    if provider == "perplexity":
        return perplexity_client.grounded_completion
    if provider == "anthropic":
        return anthropic_client.claude_grounded_completion
    raise RuntimeError(f"Unknown COMPLETION_PROVIDER: {provider!r}")


def complete(
    prompt: str,
    grounding: bool = True,
    *,
    provider: str | None = None,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
) -> Completion:
    """Submit a prompt and return text plus grounding citations.

    With grounding enabled, the grounded provider is retried per ``policy``.
    If it still fails, the non-grounded model is called exactly once and its
    text is returned with no citations (``grounded=False``); callers treat
    that as "grounded search unavailable". Raises CompletionError when the
    fallback fails too.

    With grounding disabled the non-grounded call is the primary call and
    gets the full retry policy.
    """
    fallback_policy = policy
    if grounding:
        provider = provider or COMPLETION_PROVIDER
        try:
            backend = _grounded_backend(provider)
            return call_with_retry(
                lambda: backend(prompt),
                policy=policy,
                description=f"Grounded completion ({provider})",
                sleep=sleep,
            )
        except RuntimeError as exc:
            LOGGER.warning("Grounded completion exhausted, falling back to no-tool call: %s", exc)
        fallback_policy = replace(policy, max_attempts=1)

    try:
        return call_with_retry(
            lambda: llm_client.ungrounded_completion(prompt),
            policy=fallback_policy,
            description="Non-grounded completion",
            sleep=sleep,
        )
    except RuntimeError as exc:
        raise CompletionError(f"Completion failed: {exc}") from exc
