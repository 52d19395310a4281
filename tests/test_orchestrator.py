"""Tests for concurrent query execution (application/orchestrator.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx

from fakes import FakeFetcher, StaticQueryGenerator

from ghcrawl.application.deduplicator import InMemoryDeduplicator
from ghcrawl.application.orchestrator import CrawlerOrchestrator
from ghcrawl.infrastructure.github_client import GitHubClient


def _orchestrator(fetcher: FakeFetcher, queries: list[str]) -> CrawlerOrchestrator:
    return CrawlerOrchestrator(
        fetcher=fetcher,
        generator=StaticQueryGenerator(queries),
        deduplicator=InMemoryDeduplicator(),
        max_concurrent=2,
    )


async def _collect(orchestrator: CrawlerOrchestrator, limit: int = 100) -> list[str]:
    ids = []
    async for batch in orchestrator.collect(limit):
        ids.extend(snapshot.node_id for snapshot, _ in batch)
    return ids


class TestCollect:
    async def test_pages_through_every_query(self, make_snapshot) -> None:
        fetcher = FakeFetcher({
            "q1": [[(make_snapshot("R_1"), None)], [(make_snapshot("R_2"), None)]],
            "q2": [[(make_snapshot("R_3"), None)]],
        })

        ids = await _collect(_orchestrator(fetcher, ["q1", "q2"]))

        assert sorted(ids) == ["R_1", "R_2", "R_3"]
        assert ("q1", "1") in fetcher.calls

    async def test_repository_matched_by_two_queries_is_yielded_once(self, make_snapshot) -> None:
        shared = make_snapshot("R_shared")
        fetcher = FakeFetcher({
            "org:a topic:x": [[(shared, None), (make_snapshot("R_a"), None)]],
            "org:a topic:y": [[(shared, None)]],
        })

        ids = await _collect(_orchestrator(fetcher, ["org:a topic:x", "org:a topic:y"]))

        assert sorted(ids) == ["R_a", "R_shared"]

    async def test_stops_paging_at_limit(self, make_snapshot) -> None:
        pages = [[(make_snapshot(f"R_{p}_{i}"), None) for i in range(3)] for p in range(5)]
        fetcher = FakeFetcher({"q": pages})

        ids = await _collect(_orchestrator(fetcher, ["q"]), limit=4)

        assert len(ids) == 6
        assert len(fetcher.calls) == 2

    async def test_failed_query_is_skipped(self, make_snapshot) -> None:
        fetcher = FakeFetcher(
            {"good": [[(make_snapshot("R_1"), None)]]},
            failing={"bad"},
        )

        ids = await _collect(_orchestrator(fetcher, ["bad", "good"]))

        assert ids == ["R_1"]

    async def test_no_queries_yields_nothing(self) -> None:
        assert await _collect(_orchestrator(FakeFetcher({}), [])) == []

    async def test_pauses_when_rate_limit_runs_low(self, make_snapshot) -> None:
        fetcher = FakeFetcher(
            {"q": [[(make_snapshot("R_1"), None)], [(make_snapshot("R_2"), None)]]},
            rate=3,
        )
        sleep = AsyncMock()

        with patch("ghcrawl.application.orchestrator.asyncio.sleep", sleep):
            ids = await _collect(_orchestrator(fetcher, ["q"]))

        assert ids == ["R_1", "R_2"]
        sleep.assert_awaited_once_with(60)

    async def test_query_with_unusable_github_page_is_skipped(self) -> None:
        def reply(url, *, headers, json, timeout):
            if json["variables"]["query"] == "org:locked":
                body = {
                    "data": {"rateLimit": {"remaining": 4000}, "search": None},
                    "errors": [{"type": "FORBIDDEN", "message": "Resource not accessible"}],
                }
            else:
                node = {"id": "R_ok", "nameWithOwner": "acme/ok", "createdAt": "2025-01-01T00:00:00Z"}
                body = {
                    "data": {
                        "rateLimit": {"remaining": 4000},
                        "search": {"pageInfo": {"hasNextPage": False, "endCursor": None}, "nodes": [node]},
                    }
                }
            return httpx.Response(200, json=body, request=httpx.Request("POST", url))

        http = AsyncMock(spec=httpx.AsyncClient)
        http.post = AsyncMock(side_effect=reply)
        orchestrator = CrawlerOrchestrator(
            fetcher=GitHubClient(token="t", client=http),
            generator=StaticQueryGenerator(["org:locked", "org:acme"]),
            deduplicator=InMemoryDeduplicator(),
        )

        ids = await _collect(orchestrator)

        assert ids == ["R_ok"]
