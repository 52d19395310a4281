"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import pytest

from ghcrawl.domain.entities import RepositorySnapshot

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_snapshot() -> Callable[..., RepositorySnapshot]:
    """Factory for a quiet repository created and updated at NOW."""

    def _make(node_id: str = "R_1", **overrides) -> RepositorySnapshot:
        fields = dict(
            node_id=node_id,
            name_with_owner=f"acme/{node_id.lower()}",
            forks_count=0,
            subscribers_count=0,
            stargazers_count=0,
            open_issues_count=0,
            description="",
            created_at=NOW,
            updated_at=NOW,
        )
        fields.update(overrides)
        return RepositorySnapshot(**fields)

    return _make
