"""
Domain Layer - Interfaces (Abstract Contracts)
-----------------------------------------------
What the outer layers must provide. The application layer only talks to
these, so tests can hand in fakes for the GitHub API and the output.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import RepositorySnapshot, ScoredRepository

# A fetched repository together with the raw text of its innersource.json
# (None when the repository has no listing).
FetchedRepo = tuple[RepositorySnapshot, str | None]


class IRepoFetcher(ABC):
    """Contract that any hosting API client must fulfil."""

    @abstractmethod
    async def fetch_page(self, query_str: str, cursor: str | None = None) -> tuple[list[FetchedRepo], bool, str | None, int]:
        """
        Fetch one page of search results.

        Returns:
            repos           - (snapshot, listing text) pairs
            has_next_page   - True if more pages exist
            end_cursor      - pagination bookmark for next page
            rate_remaining  - how many API calls remain before limit
        """
        ...


class IQueryGenerator(ABC):
    """Contract for anything that generates search query strings."""

    @abstractmethod
    def generate(self) -> list[str]:
        """Return a list of search query strings."""
        ...


class IDeduplicator(ABC):
    """
    Contract for the deduplication service.
    Several queries can match the same repository; it must be scored once.
    """

    @abstractmethod
    async def filter_fresh(self, repos: list[FetchedRepo]) -> list[FetchedRepo]:
        """Return only repos not seen before. Remembers what it has seen."""
        ...

    @abstractmethod
    def total_seen(self) -> int:
        """Return how many unique repos have been seen so far."""
        ...


class IResultWriter(ABC):
    """Contract for the output side."""

    @abstractmethod
    def write(self, repos: list[ScoredRepository]) -> None:
        """Write the scored repositories."""
        ...
