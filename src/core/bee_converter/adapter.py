from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from .utils import byte_size

PROVENANCE_KEY = "provenance"
PROVENANCE_VERSION = "1.0"
EDITOR_TYPE = "visual"
SOURCE = "html_import"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Counts any bracketed token, independent of the normalizer's rewrite rules.
MERGE_TAG_RE = re.compile(r"\{\{[^}]+\}\}")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def count_merge_tags(html: str) -> int:
    return len(MERGE_TAG_RE.findall(html))


class ResponseAdapter:
    """Stamps converted Bee JSON with organization and provenance metadata."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now

    def adapt(
        self,
        payload: Mapping[str, Any],
        original_html: str,
        organization_id: str,
    ) -> dict[str, Any]:
        document = dict(payload)
        document[PROVENANCE_KEY] = {
            "version": PROVENANCE_VERSION,
            "editor_type": EDITOR_TYPE,
            "organization_id": organization_id,
            "source": SOURCE,
            "converted_at": self._timestamp(),
            "original_html_bytes": byte_size(original_html),
            "merge_tags_count": count_merge_tags(original_html),
        }
        return document

    def _timestamp(self) -> str:
        moment = self._clock()
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.strftime(TIMESTAMP_FORMAT)


__all__ = [
    "EDITOR_TYPE",
    "PROVENANCE_KEY",
    "ResponseAdapter",
    "count_merge_tags",
    "utc_now",
]
