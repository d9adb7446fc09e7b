"""
Document gate: decides whether a response body should be rewritten at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .config import RewriteConfig, ADMIN_PATH_MARKER

AdminCheck = Union[bool, None, Callable[[], bool]]


@dataclass
class GateDecision:
    proceed: bool
    reason: str = ""


class DocumentGate:
    def __init__(self, config: RewriteConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def check(self, html: str, is_admin: AdminCheck = None, request_path: str = "") -> GateDecision:
        """
        Args:
            html: Response body
            is_admin: Admin-area flag, or a callable performing area detection.
                None means the area is unknown and the request path decides.
            request_path: Request URI used as the fallback admin heuristic
        """
        if not self.config.enabled:
            self.logger.debug("CDN rewriting disabled")
            return GateDecision(False, 'disabled')

        admin = self._is_admin_area(is_admin, request_path)
        if admin:
            return GateDecision(False, admin)

        if not html:
            self.logger.debug("Empty document, nothing to rewrite")
            return GateDecision(False, 'empty_document')

        if not self.config.cdn_base_url:
            self.logger.warning("CDN base URL is empty")
            return GateDecision(False, 'empty_cdn_url')

        return GateDecision(True)

    def _is_admin_area(self, is_admin: AdminCheck, request_path: str) -> str:
        """Return the short-circuit reason, or '' when not in an admin context."""
        if callable(is_admin):
            try:
                is_admin = bool(is_admin())
            except Exception as e:
                self.logger.debug(f"Area detection failed, falling back to request path: {e}")
                is_admin = None

        if is_admin:
            self.logger.debug("Skipping admin area")
            return 'admin_area'

        if is_admin is None and request_path and ADMIN_PATH_MARKER in request_path:
            self.logger.debug(f"Skipping admin path: {request_path}")
            return 'admin_path'

        return ''
