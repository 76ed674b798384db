"""
Stream classifier.

Decides whether a resolved stream link is directly playable or a hosting
page that one of the registered extractors must turn into a media URL.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional

from .models import Stream


@dataclass(frozen=True)
class ExtractionRule:
    service: str
    pattern: re.Pattern[str]

    def matches(self, url: str) -> bool:
        return bool(self.pattern.search(url))


# Ordered; the first matching rule wins. Patterns target disjoint hosts.
EXTRACTION_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        service="gdrive",
        pattern=re.compile(r"^https?://drive\.google\.com/file/", re.IGNORECASE),
    ),
    ExtractionRule(
        service="hubcloud",
        pattern=re.compile(r"^https?://(?:[\w-]+\.)*hubcloud\.[a-z]{2,}/.+", re.IGNORECASE),
    ),
    ExtractionRule(
        service="nexdrive",
        pattern=re.compile(r"^https?://(?:[\w-]+\.)*nexdrive\.[a-z]{2,}/[a-z0-9]+/?(?:[?#].*)?$", re.IGNORECASE),
    ),
    ExtractionRule(
        service="gdflix",
        pattern=re.compile(r"^https?://(?:[\w-]+\.)*gdflix\.[a-z]{2,}/file/", re.IGNORECASE),
    ),
)


def extraction_service_for(url: str) -> Optional[str]:
    for rule in EXTRACTION_RULES:
        if rule.matches(url):
            return rule.service
    return None


def extraction_services() -> frozenset[str]:
    """Every service key the classifier can emit."""

    return frozenset(rule.service for rule in EXTRACTION_RULES)


def classify(stream: Stream) -> Stream:
    service = extraction_service_for(stream.link or "")
    return replace(
        stream,
        requires_extraction=service is not None,
        extraction_service=service,
    )
