from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class RepositorySnapshot:
    """
    Immutable domain entity holding the statistics of one repository
    as the hosting API reported them at crawl time.

    frozen=True: the scoring code only ever reads a snapshot.

    The four counters and the description are Optional because upstream
    data can leave them unset. Scoring refuses to guess a value for them
    and raises MissingFieldError instead.
    """
    node_id:                str
    name_with_owner:        str
    forks_count:            int | None
    subscribers_count:      int | None
    stargazers_count:       int | None
    open_issues_count:      int | None
    description:            str | None
    created_at:             datetime | None
    updated_at:             datetime | None
    name:                   str = ""
    owner_login:            str = ""
    url:                    str = ""
    primary_language:       str | None = None
    is_private:             bool = False
    topics:                 tuple[str, ...] = ()
    has_contributing_guide: bool = False


@dataclass
class InnerSourceMetadata:
    """
    Curated InnerSource listing of a repository (its innersource.json).

    Mutable on purpose: the score engine records its result in `score`.
    Only `motivation` and `guidelines` take part in scoring, the rest is
    carried through to the portal output.
    """
    title:         str = ""
    motivation:    str = ""
    contributions: list[str] = field(default_factory=list)
    skills:        list[str] = field(default_factory=list)
    logo:          str = ""
    docs:          str = ""
    language:      str = ""

    # Not in the documented listing schema but read by the portal
    participation: str | list[int] = ""
    guidelines:    str = ""
    score:         int = 0


@dataclass
class ScoredRepository:
    """One repository paired with its (scored) listing."""
    snapshot: RepositorySnapshot
    metadata: InnerSourceMetadata


@dataclass(frozen=True)
class CrawlOptions:
    """
    Search filters for one crawl run.

    Passed explicitly into query construction; nothing reads them from
    module state.
    """
    user:          str = ""
    organizations: tuple[str, ...] = ()
    topics:        tuple[str, ...] = ()
    visibility:    str = "public"
    limit:         int = 1000


@dataclass(frozen=True)
class CrawlResult:
    """
    Immutable value object summarising a completed crawl run.
    Returned by the application service when crawling finishes.
    """
    total_repos:   int
    scored:        int
    skipped:       int
    status:        str
    elapsed_secs:  float
    error_message: str | None = None
