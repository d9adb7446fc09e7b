"""
Per-invocation rewrite state.

A fresh RewriteContext is built for every document; nothing here is shared
between invocations.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .logger import ErrorTracker


def cache_key(canonical: str) -> str:
    return hashlib.md5(canonical.encode('utf-8')).hexdigest()


@dataclass
class Candidate:
    raw: str                     # Reference as found in the document
    context: str                 # Locator pass that produced it
    span: Optional[Tuple[int, int]] = None


class MemoCache:
    """
    Remembers which canonical paths were already rewritten or skipped.

    A key enters exactly one of the two maps, the first time it is resolved.
    """

    def __init__(self):
        self.rewritten: Dict[str, bool] = {}
        self.skipped: Dict[str, bool] = {}

    def is_resolved(self, canonical: str) -> bool:
        key = cache_key(canonical)
        return key in self.rewritten or key in self.skipped

    def is_rewritten(self, canonical: str) -> bool:
        return cache_key(canonical) in self.rewritten

    def is_skipped(self, canonical: str) -> bool:
        return cache_key(canonical) in self.skipped

    def mark_rewritten(self, canonical: str) -> None:
        key = cache_key(canonical)
        if key not in self.skipped:
            self.rewritten[key] = True

    def mark_skipped(self, canonical: str) -> None:
        key = cache_key(canonical)
        if key not in self.rewritten:
            self.skipped[key] = True

    def __len__(self) -> int:
        return len(self.rewritten) + len(self.skipped)


@dataclass
class RewriteContext:
    html: str
    errors: ErrorTracker
    memo: MemoCache = field(default_factory=MemoCache)
    replacement_count: int = 0
    replaced_urls: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def start(cls, html: str, logger: logging.Logger) -> "RewriteContext":
        return cls(html=html, errors=ErrorTracker(logger))

    def record(self, original: str, target: str, count: int = 1) -> None:
        """Account for `count` substitutions of original by target."""
        if count <= 0:
            return
        self.replacement_count += count
        self.replaced_urls[original] = target
