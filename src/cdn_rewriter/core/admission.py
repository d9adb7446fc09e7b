"""
Admission filter: decides per canonical path whether it may be rewritten.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .context import MemoCache
from ..utils.urls import has_local_prefix


class AdmissionFilter:
    def __init__(self,
                 excluded_paths: Iterable[str],
                 protected_fragments: Iterable[str],
                 logger: Optional[logging.Logger] = None):
        self.excluded_paths = list(excluded_paths)
        self.protected_fragments = list(protected_fragments)
        self.logger = logger or logging.getLogger(__name__)

        # Exact-match set: each entry and its /static-qualified form
        self._excluded = set()
        for entry in self.excluded_paths:
            self._excluded.add(entry)
            self._excluded.add('/static' + entry)

    def is_excluded(self, canonical: str) -> bool:
        """Exact exclusion, with the protected-module override applied."""
        if canonical not in self._excluded:
            return False
        return not self.is_protected(canonical)

    def is_protected(self, canonical: str) -> bool:
        return any(fragment in canonical for fragment in self.protected_fragments)

    def admit(self, canonical: str, memo: MemoCache) -> bool:
        """
        Args:
            canonical: Canonical local path
            memo: Invocation memo; every rejection of a new path is recorded

        Returns:
            True when the path should be rewritten
        """
        if not has_local_prefix(canonical):
            memo.mark_skipped(canonical)
            return False

        if memo.is_resolved(canonical):
            return False

        if canonical in self._excluded:
            if self.is_protected(canonical):
                self.logger.debug(f"Processing protected module: {canonical}")
            else:
                self.logger.debug(f"Skipping excluded file: {canonical}")
                memo.mark_skipped(canonical)
                return False

        return True
