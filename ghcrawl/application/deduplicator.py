from __future__ import annotations
import asyncio
from ghcrawl.domain.interfaces import FetchedRepo, IDeduplicator

class InMemoryDeduplicator(IDeduplicator):
    """
    In-memory deduplication using a set of seen node_ids.
    The asyncio.Lock ensures two coroutines never update _seen simultaneously.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = asyncio.Lock()

    async def filter_fresh(self, repos: list[FetchedRepo]) -> list[FetchedRepo]:
        async with self._lock:
            fresh = []
            for snapshot, listing in repos:
                if snapshot.node_id in self._seen:
                    continue
                self._seen.add(snapshot.node_id)
                fresh.append((snapshot, listing))
            return fresh

    def total_seen(self) -> int:
        return len(self._seen)
