"""Tests for the crawl use case (application/crawl_service.py)."""

from __future__ import annotations

import json
import logging
from datetime import timedelta

from fakes import ExplodingWriter, FakeFetcher, ListWriter, StaticQueryGenerator

from ghcrawl.application.crawl_service import CrawlApplicationService
from ghcrawl.application.deduplicator import InMemoryDeduplicator
from ghcrawl.application.orchestrator import CrawlerOrchestrator
from ghcrawl.domain.scoring import ScoreEngine, ScoreMode


def _service(pages: dict, writer, now, mode: ScoreMode = ScoreMode.LEGACY, skip_incomplete: bool = True) -> CrawlApplicationService:
    orchestrator = CrawlerOrchestrator(
        fetcher=FakeFetcher(pages),
        generator=StaticQueryGenerator(list(pages)),
        deduplicator=InMemoryDeduplicator(),
    )
    return CrawlApplicationService(
        orchestrator=orchestrator,
        writer=writer,
        engine=ScoreEngine(mode),
        now=now,
        skip_incomplete=skip_incomplete,
    )


class TestExecute:
    async def test_scores_and_ranks_repositories(self, make_snapshot, now) -> None:
        stale = make_snapshot("R_stale", updated_at=now - timedelta(days=2))
        fresh = make_snapshot("R_fresh")
        guided = make_snapshot("R_guided", has_contributing_guide=True)
        writer = ListWriter()

        result = await _service({"q": [[(stale, None), (fresh, None), (guided, None)]]}, writer, now).execute(10)

        assert result.status == "success"
        assert (result.total_repos, result.scored, result.skipped) == (3, 3, 0)
        assert [r.snapshot.node_id for r in writer.written] == ["R_guided", "R_fresh", "R_stale"]
        assert [r.metadata.score for r in writer.written] == [1100, 1000, 944]

    async def test_listing_feeds_the_score(self, make_snapshot, now) -> None:
        listing = json.dumps({"title": "Widget", "motivation": "A motivation well over thirty characters"})
        writer = ListWriter()

        await _service({"q": [[(make_snapshot("R_1"), listing)]]}, writer, now).execute(10)

        [scored] = writer.written
        assert scored.metadata.title == "Widget"
        assert scored.metadata.score == 1050

    async def test_real_mode(self, make_snapshot, now) -> None:
        writer = ListWriter()
        await _service({"q": [[(make_snapshot("R_1"), None)]]}, writer, now, mode=ScoreMode.REAL).execute(10)
        assert writer.written[0].metadata.score == 1001

    async def test_limit_trims_results(self, make_snapshot, now) -> None:
        page = [(make_snapshot(f"R_{i}"), None) for i in range(5)]
        writer = ListWriter()

        result = await _service({"q": [page]}, writer, now).execute(3)

        assert result.total_repos == 3
        assert len(writer.written) == 3

    async def test_nothing_found_still_writes(self, now) -> None:
        writer = ListWriter()
        result = await _service({}, writer, now).execute(10)
        assert result.status == "success"
        assert writer.written == []


class TestIncompleteRepositories:
    async def test_missing_field_is_skipped(self, make_snapshot, now, caplog) -> None:
        broken = make_snapshot("R_broken", subscribers_count=None)
        writer = ListWriter()

        with caplog.at_level(logging.WARNING):
            result = await _service({"q": [[(broken, None), (make_snapshot("R_ok"), None)]]}, writer, now).execute(10)

        assert result.status == "success"
        assert (result.scored, result.skipped) == (1, 1)
        assert [r.snapshot.node_id for r in writer.written] == ["R_ok"]
        assert "subscribers_count" in caplog.text

    async def test_broken_listing_is_skipped(self, make_snapshot, now) -> None:
        writer = ListWriter()
        result = await _service({"q": [[(make_snapshot("R_1"), "{not json")]]}, writer, now).execute(10)
        assert result.skipped == 1
        assert writer.written == []

    async def test_strict_mode_aborts(self, make_snapshot, now) -> None:
        broken = make_snapshot("R_broken", description=None)
        writer = ListWriter()

        result = await _service({"q": [[(broken, None)]]}, writer, now, skip_incomplete=False).execute(10)

        assert result.status == "failed"
        assert "description" in result.error_message
        assert writer.written is None


class TestFailures:
    async def test_writer_failure_is_reported(self, make_snapshot, now) -> None:
        result = await _service({"q": [[(make_snapshot("R_1"), None)]]}, ExplodingWriter(), now).execute(10)

        assert result.status == "failed"
        assert result.scored == 1
        assert result.error_message == "stdout closed"
