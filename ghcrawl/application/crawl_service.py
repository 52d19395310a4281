from __future__ import annotations

import logging
from datetime import datetime, timezone

from ghcrawl.domain.entities import CrawlResult, ScoredRepository
from ghcrawl.domain.errors import ListingError, MissingFieldError
from ghcrawl.domain.interfaces import FetchedRepo, IResultWriter
from ghcrawl.domain.scoring import ScoreEngine
from .metadata import parse_listing
from .orchestrator import CrawlerOrchestrator

log = logging.getLogger(__name__)


class CrawlApplicationService:
    """
    The top-level use case: crawl GitHub, score every repository, write
    the ranked list.

    All repositories of one run are scored against the same instant
    (`now`, defaulting to the start of the run), so their scores are
    comparable.

    skip_incomplete decides what happens to a repository whose snapshot
    lacks a required field or whose listing is broken: True logs and skips
    it, False aborts the run.
    """

    def __init__(self, orchestrator: CrawlerOrchestrator, writer: IResultWriter, engine: ScoreEngine, now: datetime | None = None, skip_incomplete: bool = True) -> None:
        self._orchestrator    = orchestrator
        self._writer          = writer
        self._engine          = engine
        self._now             = now
        self._skip_incomplete = skip_incomplete

    def _score(self, fetched: FetchedRepo, now: datetime) -> ScoredRepository:
        snapshot, listing = fetched
        metadata = parse_listing(listing, has_contributing_guide=snapshot.has_contributing_guide)
        self._engine.compute(snapshot, metadata, now)
        return ScoredRepository(snapshot=snapshot, metadata=metadata)

    async def execute(self, limit: int) -> CrawlResult:
        """
        Run a full crawl for up to `limit` repositories.
        Returns a CrawlResult describing what happened.
        """
        started_at = datetime.now(tz=timezone.utc)
        now        = self._now or started_at
        total      = 0
        skipped    = 0
        scored: list[ScoredRepository] = []

        log.info("CrawlApplicationService | limit: %d | mode: %s", limit, self._engine.mode.value)

        try:
            async for batch in self._orchestrator.collect(limit):
                # Trim batch if it would push us past the limit
                batch = batch[: limit - total]
                total += len(batch)

                for fetched in batch:
                    try:
                        scored.append(self._score(fetched, now))
                    except (MissingFieldError, ListingError) as exc:
                        if not self._skip_incomplete:
                            raise
                        skipped += 1
                        log.warning("Skipping %s: %s", fetched[0].name_with_owner, exc)

                if total >= limit:
                    break

            scored.sort(key=lambda r: r.metadata.score, reverse=True)
            self._writer.write(scored)

            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.info("Crawl complete | %d repos | %d scored | %d skipped | %.1fs", total, len(scored), skipped, elapsed)
            return CrawlResult(
                total_repos  = total,
                scored       = len(scored),
                skipped      = skipped,
                status       = "success",
                elapsed_secs = elapsed,
            )
        except Exception as exc:
            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.error("Crawl failed: %s", exc, exc_info=True)
            return CrawlResult(
                total_repos   = total,
                scored        = len(scored),
                skipped       = skipped,
                status        = "failed",
                elapsed_secs  = elapsed,
                error_message = str(exc),
            )
