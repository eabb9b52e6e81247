"""Tests for the CLI entrypoint (main.run)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import main
from grounding import LENIENT, STRICT
from models import DiseaseTopic, Methodology, StudyType
from pipeline import STATUS_CACHED, STATUS_FAILED, STATUS_FRESH, FeedResult


def _args(*argv: str):
    with patch("sys.argv", ["bioinsight-swarm", *argv]):
        return main.parse_args()


def test_build_filters_defaults_to_broad_mode() -> None:
    filters = main.build_filters(_args())

    assert filters.topics == ()
    assert filters.study_types == tuple(StudyType)
    assert filters.methodologies == tuple(Methodology)
    assert filters.variant == "live"
    assert filters.cutoff == (datetime.now(UTC) - timedelta(days=30)).date()


def test_build_filters_from_flags() -> None:
    filters = main.build_filters(_args(
        "--topics", "CKD", "Obesity",
        "--study-types", "Clinical Trial",
        "--methodologies", "AI/ML",
        "--variant", "ai",
        "--days", "7",
    ))

    assert filters.topics == (DiseaseTopic.CKD, DiseaseTopic.OBESITY)
    assert filters.study_types == (StudyType.CLINICAL_TRIAL,)
    assert filters.methodologies == (Methodology.AI_ML,)
    assert filters.variant == "ai"
    assert filters.cutoff == (datetime.now(UTC) - timedelta(days=7)).date()


def test_dry_run_makes_no_calls() -> None:
    with patch("main.fetch_literature") as mock_fetch:
        assert main.run(_args("--dry-run")) == 0

    mock_fetch.assert_not_called()


def test_failed_refresh_exits_nonzero() -> None:
    failed = FeedResult(papers=[], status=STATUS_FAILED, fingerprint="live:", failed_agents=["Sniper-General"])

    with patch("main.fetch_literature", return_value=failed):
        assert main.run(_args("--no-cache")) == 1


def test_run_passes_policy_and_writes_csv(make_paper) -> None:
    paper = make_paper()
    fresh = FeedResult(papers=[paper], status=STATUS_FRESH, fingerprint="live:CKD")

    with patch("main.fetch_literature", return_value=fresh) as mock_fetch, \
         patch("main.write_papers") as mock_write:
        assert main.run(_args("--no-cache", "--lenient", "--sequential", "--csv", "out.csv")) == 0

    kwargs = mock_fetch.call_args.kwargs
    assert kwargs["policy"] == LENIENT
    assert kwargs["parallel"] is False
    assert kwargs["cache"] is None
    mock_write.assert_called_once_with([paper], csv_path="out.csv")


def test_run_defaults_to_strict_parallel() -> None:
    fresh = FeedResult(papers=[], status=STATUS_FRESH, fingerprint="live:")

    with patch("main.fetch_literature", return_value=fresh) as mock_fetch:
        main.run(_args("--no-cache"))

    assert mock_fetch.call_args.kwargs["policy"] == STRICT
    assert mock_fetch.call_args.kwargs["parallel"] is True


def test_polish_replaces_hub_links_only(make_paper) -> None:
    hub = make_paper(title="Hub linked finerenone paper", url="https://www.nature.com/")
    direct = make_paper(title="Direct linked tirzepatide paper")
    fresh = FeedResult(papers=[hub, direct], status=STATUS_FRESH, fingerprint="live:")

    with patch("main.fetch_literature", return_value=fresh), \
         patch("main.polish_link", return_value="https://www.nature.com/articles/hub") as mock_polish, \
         patch("main.write_papers") as mock_write:
        main.run(_args("--no-cache", "--polish", "--csv", "out.csv"))

    mock_polish.assert_called_once_with(hub)
    written = mock_write.call_args.args[0]
    by_title = {paper.title: paper for paper in written}
    assert by_title["Hub linked finerenone paper"].is_polished is True
    assert by_title["Direct linked tirzepatide paper"].is_polished is False


def test_polished_links_are_written_back_to_cache(make_paper) -> None:
    hub = make_paper(title="Hub linked finerenone paper", url="https://www.nature.com/")
    cached = FeedResult(papers=[hub], status=STATUS_CACHED, fingerprint="live:CKD")

    with patch("main.PaperCache") as mock_cache_cls, \
         patch("main.JsonFileStore"), \
         patch("main.fetch_literature", return_value=cached), \
         patch("main.polish_link", return_value="https://www.nature.com/articles/hub"):
        assert main.run(_args("--polish")) == 0

    fingerprint, [stored] = mock_cache_cls.return_value.update.call_args.args
    assert fingerprint == "live:CKD"
    assert stored.url == "https://www.nature.com/articles/hub"
    assert stored.is_polished is True


def test_cache_untouched_when_polishing_changes_nothing(make_paper) -> None:
    direct = make_paper()
    cached = FeedResult(papers=[direct], status=STATUS_CACHED, fingerprint="live:CKD")

    with patch("main.PaperCache") as mock_cache_cls, \
         patch("main.JsonFileStore"), \
         patch("main.fetch_literature", return_value=cached), \
         patch("main.polish_link") as mock_polish:
        main.run(_args("--polish"))

    mock_polish.assert_not_called()
    mock_cache_cls.return_value.update.assert_not_called()
