from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx

from ghcrawl.domain.entities import RepositorySnapshot
from ghcrawl.domain.errors import FetchError, RateLimitError
from ghcrawl.domain.interfaces import FetchedRepo, IRepoFetcher

log = logging.getLogger(__name__)

GITHUB_API_URL= "https://api.github.com/graphql"
PAGE_SIZE= 50
RATE_LIMIT_SLEEP= 60
MAX_RETRIES= 5

# innersource.json and CONTRIBUTING.md are looked up at HEAD in the same
# request, so one page costs one call.
GRAPHQL_QUERY = """
query SearchRepos($query: String!, $first: Int!, $after: String) {
  rateLimit {
    remaining
    resetAt
    cost
  }
  search(query: $query, type: REPOSITORY, first: $first, after: $after) {
    repositoryCount
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      ... on Repository {
        id
        nameWithOwner
        name
        url
        owner { login }
        description
        primaryLanguage { name }
        isPrivate
        forkCount
        stargazerCount
        watchers { totalCount }
        issues(states: OPEN) { totalCount }
        pullRequests(states: OPEN) { totalCount }
        repositoryTopics(first: 20) { nodes { topic { name } } }
        createdAt
        updatedAt
        listing: object(expression: "HEAD:innersource.json") {
          ... on Blob { text }
        }
        contributing: object(expression: "HEAD:CONTRIBUTING.md") {
          ... on Blob { id }
        }
      }
    }
  }
}
"""


def _total_count(node: dict, key: str) -> int | None:
    """Read `{key: {totalCount: n}}`; None when GitHub left the connection out."""
    connection = node.get(key)
    if connection is None:
        return None
    return connection.get("totalCount")


def _open_issues(node: dict) -> int | None:
    """Open issues plus open pull requests, as the REST open_issues_count reports it."""
    issues = _total_count(node, "issues")
    pulls  = _total_count(node, "pullRequests")
    if issues is None or pulls is None:
        return None
    return issues + pulls


class GitHubClient(IRepoFetcher):
    """
    IRepoFetcher for GitHub's GraphQL API (github.com or GitHub Enterprise).

    The constructor receives an httpx.AsyncClient (injected) rather than
    creating one internally. The caller owns the client lifecycle.
    """

    def __init__(self, token: str, client: httpx.AsyncClient, api_url: str = GITHUB_API_URL) -> None:
        self._client  = client
        self._api_url = api_url
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type":  "application/json",
        }

    # Anti-Corruption Layer
    @staticmethod
    def _parse_datetime(value: str | None) -> datetime | None:
        """Convert GitHub's ISO datetime string to Python datetime."""
        if not value:
            return None
        return datetime.fromisoformat(value.replace("Z", "+00:00"))

    def _parse_node(self, node: dict) -> FetchedRepo | None:
        """
        Translate one GitHub search node into a RepositorySnapshot plus the
        raw innersource.json text.

        GitHub sends:                 We store as:
          "forkCount"              ->  forks_count
          "watchers.totalCount"    ->  subscribers_count
          "issues.totalCount"
          + "pullRequests.totalCount" ->  open_issues_count

        Counters GitHub leaves out stay None; the score engine reports them.
        """
        try:
            snapshot = RepositorySnapshot(
                node_id           = node["id"],
                name_with_owner   = node["nameWithOwner"],
                name              = node.get("name", ""),
                owner_login       = (node.get("owner") or {}).get("login", ""),
                url               = node.get("url", ""),
                forks_count       = node.get("forkCount"),
                subscribers_count = _total_count(node, "watchers"),
                stargazers_count  = node.get("stargazerCount"),
                open_issues_count = _open_issues(node),
                description       = node.get("description"),
                primary_language  = (
                    node["primaryLanguage"]["name"]
                    if node.get("primaryLanguage") else None
                ),
                is_private = node.get("isPrivate", False),
                topics     = tuple(
                    t["topic"]["name"]
                    for t in (node.get("repositoryTopics") or {}).get("nodes", [])
                ),
                created_at = self._parse_datetime(node.get("createdAt")),
                updated_at = self._parse_datetime(node.get("updatedAt")),
                has_contributing_guide = node.get("contributing") is not None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            log.debug("Skipping malformed API node %s: %s", node.get("id"), exc)
            return None

        listing = (node.get("listing") or {}).get("text")
        return snapshot, listing

    def _parse_page(self, response: httpx.Response, query_str: str) -> tuple[list[FetchedRepo], bool, str | None, int]:
        """
        Unpack one GraphQL search response.

        Anything that is not a usable page becomes FetchError, so the
        orchestrator skips the query instead of failing the whole crawl.
        """
        try:
            data = response.json()
        except ValueError as exc:
            raise FetchError(f"GitHub returned a non-JSON body for query: {query_str[:80]}") from exc
        if not isinstance(data, dict):
            raise FetchError(f"GitHub returned an unexpected body for query: {query_str[:80]}")

        # GraphQL-level errors arrive with HTTP 200
        errors = data.get("errors") or []
        if errors:
            if any(isinstance(err, dict) and err.get("type") == "RATE_LIMITED" for err in errors):
                raise RateLimitError()
            log.warning("GraphQL errors for query %.60s: %s", query_str, errors)

        payload = data.get("data")
        rate    = payload.get("rateLimit") if isinstance(payload, dict) else None
        search  = payload.get("search") if isinstance(payload, dict) else None
        if not isinstance(rate, dict) or not isinstance(search, dict):
            raise FetchError(f"GitHub returned no data for query: {query_str[:80]}")

        try:
            page_info = search["pageInfo"]
            repos = [parsed for node in search["nodes"] if node and (parsed := self._parse_node(node)) is not None]
            has_next, end_cursor, remaining = page_info["hasNextPage"], page_info["endCursor"], rate["remaining"]
        except (KeyError, TypeError) as exc:
            raise FetchError(f"Malformed search page for query {query_str[:80]}: {exc}") from exc

        log.debug("Query %.60s | %d repos | rate remaining %s", query_str, len(repos), remaining)
        return repos, has_next, end_cursor, remaining

    async def fetch_page(self, query_str: str, cursor: str | None = None) -> tuple[list[FetchedRepo], bool, str | None, int]:
        """
        Fetch one page of GitHub search results with retry logic.

        Returns:
            repos          - (snapshot, innersource.json text) pairs
            has_next_page  - whether more pages exist
            end_cursor     - bookmark to pass as cursor on next call
            rate_remaining - remaining API quota

        Raises FetchError once MAX_RETRIES attempts have failed.
        """
        variables = {
            "query": query_str,
            "first": PAGE_SIZE,
            "after": cursor,
        }

        for attempt in range(MAX_RETRIES):
            try:
                response = await self._client.post(
                    self._api_url,
                    headers=self._headers,
                    json={"query": GRAPHQL_QUERY, "variables": variables},
                    timeout=30.0,
                )
                response.raise_for_status()
                return self._parse_page(response, query_str)

            except RateLimitError:
                log.info("Rate limited - sleeping %ds before retry", RATE_LIMIT_SLEEP)
                await asyncio.sleep(RATE_LIMIT_SLEEP)

            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                wait = 2 ** attempt   # exponential backoff: 1s, 2s, 4s, 8s, 16s
                log.warning("HTTP error attempt %d/%d: %s - retrying in %ds", attempt + 1, MAX_RETRIES, exc, wait)
                await asyncio.sleep(wait)

        raise FetchError(
            f"Exhausted {MAX_RETRIES} retries for query: {query_str[:80]}"
        )
