"""
innersource.json listing parser.

Listing syntax (SAP project-portal-for-innersource, docs/LISTING.md):

    {
      "title": "Readable Project Name (optional)",
      "motivation": "Why this project is InnerSource (optional)",
      "contributions": ["Bugfixes", "Features", ...],
      "skills": ["Node.js", "Java", ...],
      "logo": "path/to/logo.png (optional)",
      "docs": "http://url/to/docs (optional)",
      "language": "JavaScript (optional)"
    }

`participation`, `guidelines` and `score` are not documented there but the
portal reads them, so they are accepted too.
"""

from __future__ import annotations

import json
import logging

from ghcrawl.domain.entities import InnerSourceMetadata
from ghcrawl.domain.errors import ListingError

log = logging.getLogger(__name__)

CONTRIBUTING_FILE = "CONTRIBUTING.md"

_TEXT_FIELDS = ("title", "motivation", "logo", "docs", "language", "guidelines")
_LIST_FIELDS = ("contributions", "skills")


def parse_listing(text: str | None, has_contributing_guide: bool = False) -> InnerSourceMetadata:
    """
    Build an InnerSourceMetadata from the raw text of innersource.json.

    No listing (None or blank) gives an empty record. When the listing does
    not name guidelines but the repository has a CONTRIBUTING.md, that file
    is used as the guidelines.
    """
    data: dict = {}
    if text and text.strip():
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ListingError(f"innersource.json is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ListingError(f"innersource.json must hold an object, got {type(data).__name__}")

    metadata = InnerSourceMetadata()

    for name in _TEXT_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ListingError(f"'{name}' must be a string")
        setattr(metadata, name, value)

    for name in _LIST_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, list):
            raise ListingError(f"'{name}' must be a list")
        setattr(metadata, name, [str(item) for item in value])

    participation = data.get("participation")
    if isinstance(participation, (str, list)):
        metadata.participation = participation

    if isinstance(data.get("score"), int):
        metadata.score = data["score"]

    if not metadata.guidelines and has_contributing_guide:
        metadata.guidelines = CONTRIBUTING_FILE

    return metadata
