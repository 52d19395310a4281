from __future__ import annotations
import logging
from itertools import product
from ghcrawl.domain.entities import CrawlOptions
from ghcrawl.domain.interfaces import IQueryGenerator

log = logging.getLogger(__name__)


class SearchQueryGenerator(IQueryGenerator):
    """
    Builds GitHub search queries from the crawl options.

    GitHub search ANDs qualifiers, so two `org:` or two `topic:` in one
    query would match nothing useful. One query is generated per
    organization x topic combination instead; the orchestrator then
    deduplicates repositories matched by more than one of them.

        CrawlOptions(organizations=("a", "b"), topics=("inner-source",))
          -> "org:a is:public topic:inner-source"
             "org:b is:public topic:inner-source"
    """

    def __init__(self, options: CrawlOptions) -> None:
        self._options = options

    def generate(self) -> list[str]:
        opts = self._options
        orgs   = [f"org:{org}" for org in opts.organizations] or [""]
        topics = [f"topic:{topic}" for topic in opts.topics] or [""]

        user_part       = f"user:{opts.user}" if opts.user else ""
        visibility_part = f"is:{opts.visibility}" if opts.visibility else ""

        queries: list[str] = []
        for org_part, topic_part in product(orgs, topics):
            parts = [user_part, org_part, visibility_part, topic_part]
            query = " ".join(p for p in parts if p)
            if query and query not in queries:
                queries.append(query)

        log.info(
            "QueryGenerator produced %d queries (%d organizations x %d topics)",
            len(queries),
            len(opts.organizations),
            len(opts.topics),
        )
        return queries
