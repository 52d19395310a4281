"""
main.py - Dependency Wiring (Composition Root)
------------------------------------------------
Wires all the pieces together and runs the crawl:
  1. Reads configuration from command line flags and environment variables
  2. Creates concrete implementations of each interface
  3. Injects them into the classes that need them
  4. Calls the top-level use case (CrawlApplicationService.execute)
  5. Reports the result and exits

Dependency graph:
                         main.py
                            |
              +-------------+--------------+
              v             v              v
    CrawlApplicationService |       JsonResultWriter
              |             |
              v             v
    CrawlerOrchestrator  GitHubClient
              |
    +---------+----------+
    v         v          v
IRepoFetcher  IQueryGenerator  IDeduplicator
(GitHub)      (Search)         (InMemory)

The scored list goes to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import httpx

# Domain
from ghcrawl.domain.entities import CrawlOptions
from ghcrawl.domain.scoring import ScoreEngine, ScoreMode

# Application layer
from ghcrawl.application.crawl_service import CrawlApplicationService
from ghcrawl.application.deduplicator import InMemoryDeduplicator
from ghcrawl.application.orchestrator import MAX_CONCURRENT, CrawlerOrchestrator
from ghcrawl.application.query_generator import SearchQueryGenerator

# Infrastructure layer
from ghcrawl.infrastructure.github_client import GITHUB_API_URL, GitHubClient
from ghcrawl.infrastructure.json_writer import JsonResultWriter

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_LIMIT = 1000
TOKEN_ENV_KEY = "GITHUB_TOKEN"
API_URL_ENV_KEY = "GITHUB_GRAPHQL_URL"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _read_env() -> tuple[str, str]:
    """
    Read the GitHub token and API endpoint.
    Fails fast with a clear error if the token is missing.
    """
    token   = os.environ.get(TOKEN_ENV_KEY, "").strip()
    api_url = os.environ.get(API_URL_ENV_KEY, "").strip() or GITHUB_API_URL

    if not token:
        log.error("%s environment variable is required", TOKEN_ENV_KEY)
        sys.exit(1)

    return token, api_url


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghcrawl",
        description="Crawl GitHub for InnerSource repositories and rank them by activity score",
    )
    parser.add_argument("--user", default="", help="user to query")
    parser.add_argument("--orgs", action="append", default=[], metavar="ORG", help="organization to query (repeatable)")
    parser.add_argument("--topics", action="append", default=[], metavar="TOPIC", help="topic to query (repeatable)")
    parser.add_argument("--visibility", default="public", help="repo visibility (default: public)")
    parser.add_argument(
        "--limit",
        type    = int,
        default = DEFAULT_LIMIT,
        help    = f"maximum number of repos to score (default: {DEFAULT_LIMIT})",
    )
    parser.add_argument(
        "--score-mode",
        choices = [m.value for m in ScoreMode],
        default = ScoreMode.LEGACY.value,
        help    = "legacy reproduces historical integer truncation, real keeps fractions (default: legacy)",
    )
    parser.add_argument("--strict", action="store_true", help="abort instead of skipping repos with missing fields")
    parser.add_argument("--concurrency", type=int, default=MAX_CONCURRENT, help=f"concurrent search queries (default: {MAX_CONCURRENT})")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def options_from_args(args: argparse.Namespace) -> CrawlOptions:
    return CrawlOptions(
        user          = args.user,
        organizations = tuple(args.orgs),
        topics        = tuple(args.topics),
        visibility    = args.visibility,
        limit         = args.limit,
    )


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(args: argparse.Namespace, token: str, api_url: str) -> int:
    """
    Wires all dependencies together and executes the crawl use case.
    Returns the process exit status.
    """
    options = options_from_args(args)

    async with httpx.AsyncClient() as client:
        github_client = GitHubClient(
            token   = token,
            client  = client,
            api_url = api_url,
        )
        orchestrator = CrawlerOrchestrator(
            fetcher        = github_client,
            generator      = SearchQueryGenerator(options),
            deduplicator   = InMemoryDeduplicator(),
            max_concurrent = args.concurrency,
        )
        crawl_service = CrawlApplicationService(
            orchestrator    = orchestrator,
            writer          = JsonResultWriter(sys.stdout),
            engine          = ScoreEngine(ScoreMode(args.score_mode)),
            skip_incomplete = not args.strict,
        )

        result = await crawl_service.execute(options.limit)

    if result.status == "success":
        log.info(
            "Success | %d repos | %d scored | %d skipped | %.1fs",
            result.total_repos,
            result.scored,
            result.skipped,
            result.elapsed_secs,
        )
        return 0

    log.error(
        "Failed | %d repos collected before failure | error: %s",
        result.total_repos,
        result.error_message,
    )
    return 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def cli(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    token, api_url = _read_env()

    sys.exit(asyncio.run(build_and_run(args, token, api_url)))


if __name__ == "__main__":
    cli()
