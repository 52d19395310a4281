from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator
from ghcrawl.domain.errors import FetchError
from ghcrawl.domain.interfaces import FetchedRepo, IRepoFetcher, IQueryGenerator, IDeduplicator

log = logging.getLogger(__name__)

MAX_CONCURRENT   = 5
RATE_LIMIT_SLEEP = 60
LOW_RATE_LIMIT   = 20


class CrawlerOrchestrator:
    """
    Runs every generated search query concurrently and yields the
    repositories not seen before.

    All dependencies are injected:
      - IRepoFetcher     -> how to talk to GitHub
      - IQueryGenerator  -> what queries to run
      - IDeduplicator    -> how to deduplicate across queries
    """

    def __init__(self, fetcher: IRepoFetcher, generator: IQueryGenerator, deduplicator: IDeduplicator, max_concurrent: int = MAX_CONCURRENT) -> None:
        self._fetcher      = fetcher
        self._generator    = generator
        self._deduplicator = deduplicator
        self._semaphore    = asyncio.Semaphore(max_concurrent)

    async def _run_single_query(self, query_str: str, limit: int, out: list[FetchedRepo], stop_event: asyncio.Event) -> int:
        """
        Fetch all pages for one query string.
        Returns count of fresh repos found.
        """
        cursor = None
        found  = 0

        while not stop_event.is_set():
            async with self._semaphore:
                try:
                    repos, has_next, cursor, rate = await self._fetcher.fetch_page(query_str, cursor)
                except FetchError as exc:
                    log.warning("Query failed, skipping: %.60s | %s", query_str, exc)
                    return found

            fresh = await self._deduplicator.filter_fresh(repos)
            out.extend(fresh)
            found += len(fresh)

            if self._deduplicator.total_seen() >= limit:
                stop_event.set()
                break

            if not has_next or not repos:
                break

            if rate < LOW_RATE_LIMIT:
                log.info("Rate limit low (%d remaining) - pausing %ds", rate, RATE_LIMIT_SLEEP)
                await asyncio.sleep(RATE_LIMIT_SLEEP)

        return found

    async def collect(self, limit: int) -> AsyncIterator[list[FetchedRepo]]:
        """
        Async generator - yields one batch of fresh repos per query.

        Queries run simultaneously via asyncio.gather; the semaphore keeps
        the number of in-flight requests bounded.
        """
        queries    = self._generator.generate()
        stop_event = asyncio.Event()

        log.info("Starting crawl | queries=%d | limit=%d", len(queries), limit)

        batches: list[list[FetchedRepo]] = [[] for _ in queries]
        counts = await asyncio.gather(
            *[self._run_single_query(q, limit, batch, stop_event) for q, batch in zip(queries, batches)]
        )

        for query_str, batch, count in zip(queries, batches, counts):
            log.debug("Query %.60s | %d new repos", query_str, count)
            if batch:
                yield batch

        log.info("Crawl complete - total unique repos: %d", self._deduplicator.total_seen())
