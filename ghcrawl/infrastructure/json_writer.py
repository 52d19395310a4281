from __future__ import annotations
import json
import logging
import sys
from dataclasses import asdict
from typing import TextIO
from ghcrawl.domain.entities import ScoredRepository
from ghcrawl.domain.interfaces import IResultWriter

log = logging.getLogger(__name__)

# Key the InnerSource portal expects the listing under in repos.json
METADATA_KEY = "_InnerSourceMetadata"


def to_record(repo: ScoredRepository) -> dict:
    """Flatten one scored repository into a JSON-ready dict."""
    record = asdict(repo.snapshot)
    record["topics"]     = list(repo.snapshot.topics)
    record["created_at"] = repo.snapshot.created_at.isoformat() if repo.snapshot.created_at else None
    record["updated_at"] = repo.snapshot.updated_at.isoformat() if repo.snapshot.updated_at else None
    record[METADATA_KEY] = asdict(repo.metadata)
    return record


class JsonResultWriter(IResultWriter):
    """
    Writes the scored repositories as one JSON array.

    The stream is injected (stdout by default) and never closed here.
    """

    def __init__(self, stream: TextIO | None = None, indent: int | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._indent = indent

    def write(self, repos: list[ScoredRepository]) -> None:
        json.dump([to_record(r) for r in repos], self._stream, indent=self._indent, ensure_ascii=False)
        self._stream.write("\n")
        self._stream.flush()
        log.debug("Wrote %d repos as JSON", len(repos))
