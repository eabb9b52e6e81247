"""Tests for retry.call_with_retry and completion_client.complete."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

import anthropic_client
import perplexity_client
from completion_client import CompletionError, _grounded_backend, complete
from models import Citation, Completion
from retry import RetryPolicy, call_with_retry

_GROUNDED = Completion(
    text='```json\n[{"title": "X"}]\n```',
    citations=[Citation(url="https://nature.com/x", title="X")],
)
_UNGROUNDED = Completion(text='[{"title": "X"}]', citations=[], grounded=False)


def _no_sleep(_: float) -> None:
    return None


# ---------------------------------------------------------------------------
# RetryPolicy / call_with_retry
# ---------------------------------------------------------------------------

def test_retry_policy_delays_double_from_one_second() -> None:
    policy = RetryPolicy()

    assert policy.max_attempts == 3
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_call_with_retry_succeeds_after_transient_failures() -> None:
    fn = MagicMock(side_effect=[requests.ConnectionError("boom"), requests.Timeout("slow"), "ok"])
    sleeps: list[float] = []

    assert call_with_retry(fn, sleep=sleeps.append) == "ok"
    assert fn.call_count == 3
    assert sleeps == [1.0, 2.0]


def test_call_with_retry_raises_after_exhausting_attempts() -> None:
    fn = MagicMock(side_effect=RuntimeError("down"))
    sleeps: list[float] = []

    with pytest.raises(RuntimeError, match="failed after 3 attempts"):
        call_with_retry(fn, sleep=sleeps.append, description="Test call")

    assert fn.call_count == 3
    assert sleeps == [1.0, 2.0]


def test_call_with_retry_honours_custom_policy() -> None:
    fn = MagicMock(side_effect=RuntimeError("down"))
    sleeps: list[float] = []

    with pytest.raises(RuntimeError):
        call_with_retry(fn, policy=RetryPolicy(max_attempts=2, base_delay=0.5), sleep=sleeps.append)

    assert fn.call_count == 2
    assert sleeps == [0.5]


# ---------------------------------------------------------------------------
# complete()
# ---------------------------------------------------------------------------

def test_complete_returns_grounded_result_without_fallback() -> None:
    with patch("perplexity_client.grounded_completion", return_value=_GROUNDED) as grounded, \
         patch("llm_client.ungrounded_completion") as fallback:
        result = complete("prompt", sleep=_no_sleep)

    assert result is _GROUNDED
    grounded.assert_called_once_with("prompt")
    fallback.assert_not_called()


def test_complete_retries_then_falls_back_to_ungrounded() -> None:
    with patch("perplexity_client.grounded_completion", side_effect=requests.HTTPError("503")) as grounded, \
         patch("llm_client.ungrounded_completion", return_value=_UNGROUNDED) as fallback:
        result = complete("prompt", sleep=_no_sleep)

    assert grounded.call_count == 3
    fallback.assert_called_once_with("prompt")
    assert result.citations == []
    assert result.grounded is False


def test_complete_raises_completion_error_when_fallback_fails() -> None:
    with patch("perplexity_client.grounded_completion", side_effect=requests.HTTPError("503")), \
         patch("llm_client.ungrounded_completion", side_effect=RuntimeError("no key")) as fallback:
        with pytest.raises(CompletionError):
            complete("prompt", sleep=_no_sleep)

    assert fallback.call_count == 1


def test_fallback_runs_once_so_one_prompt_costs_at_most_four_calls() -> None:
    sleeps: list[float] = []
    with patch("perplexity_client.grounded_completion", side_effect=requests.HTTPError("503")) as grounded, \
         patch("llm_client.ungrounded_completion", side_effect=requests.Timeout("slow")) as fallback:
        with pytest.raises(CompletionError):
            complete("prompt", sleep=sleeps.append)

    assert grounded.call_count + fallback.call_count == 4
    assert sleeps == [1.0, 2.0]


def test_ungrounded_primary_call_gets_full_retry_policy() -> None:
    with patch("llm_client.ungrounded_completion", side_effect=[requests.Timeout("slow"), _UNGROUNDED]) as call:
        result = complete("prompt", grounding=False, sleep=_no_sleep)

    assert call.call_count == 2
    assert result is _UNGROUNDED


def test_completion_error_is_a_runtime_error() -> None:
    assert issubclass(CompletionError, RuntimeError)


def test_complete_without_grounding_skips_grounded_provider() -> None:
    with patch("perplexity_client.grounded_completion") as grounded, \
         patch("llm_client.ungrounded_completion", return_value=_UNGROUNDED):
        result = complete("prompt", grounding=False, sleep=_no_sleep)

    grounded.assert_not_called()
    assert result is _UNGROUNDED


def test_complete_dispatches_to_anthropic_provider() -> None:
    with patch("anthropic_client.claude_grounded_completion", return_value=_GROUNDED) as claude, \
         patch("perplexity_client.grounded_completion") as perplexity:
        result = complete("prompt", provider="anthropic", sleep=_no_sleep)

    assert result is _GROUNDED
    claude.assert_called_once_with("prompt")
    perplexity.assert_not_called()


def test_unknown_provider_degrades_to_fallback() -> None:
    with patch("llm_client.ungrounded_completion", return_value=_UNGROUNDED) as fallback:
        result = complete("prompt", provider="nope", sleep=_no_sleep)

    fallback.assert_called_once()
    assert result.citations == []


def test_grounded_backends_resolve_to_client_functions() -> None:
    assert _grounded_backend("perplexity") is perplexity_client.grounded_completion
    assert _grounded_backend("anthropic") is anthropic_client.claude_grounded_completion
