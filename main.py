"""CLI entrypoint for the biomedical literature discovery swarm."""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from agents import agents_for_variant
from cache import CACHE_PATH, JsonFileStore, PaperCache
from csv_sink import write_papers
from feed import feed_stats, sort_papers
from grounding import LENIENT, STRICT
from link_polisher import apply_polish, is_hub_url, polish_link
from models import DiseaseTopic, FilterSet, Methodology, Paper, StudyType
from pipeline import STATUS_FAILED, fetch_literature
from prompt_builder import build_search_query, default_cutoff


def parse_args() -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Discover recent biomedical papers with a grounded AI search swarm")
    parser.add_argument(
        "--topics",
        nargs="*",
        choices=[t.value for t in DiseaseTopic],
        default=[],
        help="Disease topics to track (default: a broad CVD/metabolic set)",
    )
    parser.add_argument("--study-types", nargs="*", choices=[s.value for s in StudyType], default=None)
    parser.add_argument("--methodologies", nargs="*", choices=[m.value for m in Methodology], default=None)
    parser.add_argument("--variant", choices=["live", "ai", "patent"], default="live", help="Feed variant")
    parser.add_argument("--days", type=int, default=30, help="Only keep papers from the last N days")
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run agents one at a time with a throttle delay instead of in parallel",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Keep ungrounded records with a search URL instead of dropping them",
    )
    parser.add_argument("--no-cache", action="store_true", help="Bypass the on-disk cache")
    parser.add_argument("--polish", action="store_true", help="Try to replace hub links with direct article links")
    parser.add_argument("--sort", choices=["date", "relevance"], default="date")
    parser.add_argument("--csv", default=None, help="Append results to this CSV file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the agent queries, without API calls",
    )
    return parser.parse_args()


def build_filters(args: argparse.Namespace) -> FilterSet:
    return FilterSet(
        topics=tuple(DiseaseTopic(t) for t in args.topics),
        study_types=tuple(StudyType(s) for s in args.study_types) if args.study_types else tuple(StudyType),
        methodologies=tuple(Methodology(m) for m in args.methodologies) if args.methodologies else tuple(Methodology),
        cutoff=default_cutoff(days=args.days),
        variant=args.variant,
    )


def _log_batch(agent_name: str, papers: list[Paper]) -> None:
    logging.info("Batch from %s: %s papers", agent_name, len(papers))
    for paper in papers:
        logging.info("  [%s] %s (%s) %s", paper.validation_score, paper.title, paper.date, paper.url)


def run(args: argparse.Namespace) -> int:
    """Run one refresh. Returns a process exit code."""
    filters = build_filters(args)
    agents = agents_for_variant(filters.variant)

    if args.dry_run:
        for agent in agents:
            logging.info("[dry-run] %s: %s", agent.name, build_search_query(agent, filters))
        return 0

    cache = None if args.no_cache else PaperCache(JsonFileStore(CACHE_PATH))
    result = fetch_literature(
        filters,
        cache=cache,
        agents=agents,
        parallel=not args.sequential,
        on_batch=_log_batch,
        policy=LENIENT if args.lenient else STRICT,
    )

    if result.status == STATUS_FAILED:
        logging.error("No results: every agent failed (%s). Try again later.", ", ".join(result.failed_agents))
        return 1

    papers = result.papers
    if args.polish:
        polished: list[Paper] = []
        for paper in papers:
            if is_hub_url(paper.url):
                paper = apply_polish(paper, polish_link(paper))
            polished.append(paper)
        if cache is not None and polished != papers:
            cache.update(result.fingerprint, polished)
        papers = polished

    papers = sort_papers(papers, by=args.sort)
    logging.info(
        "Refresh %s: status=%s papers=%s stats=%s", result.fingerprint, result.status, len(papers), feed_stats(papers)
    )

    if args.csv:
        write_papers(papers, csv_path=args.csv)
    return 0


def main() -> None:
    """Initialize config and execute one refresh."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    raise SystemExit(run(parse_args()))


if __name__ == "__main__":
    main()
