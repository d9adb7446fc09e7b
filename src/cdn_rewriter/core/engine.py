"""
CDN rewrite engine: runs the gate, every locator pass and the loader
post-processing over one document.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, List, Tuple, Any

from .config import RewriteConfig
from .context import Candidate, RewriteContext
from .gate import AdminCheck, DocumentGate
from .admission import AdmissionFilter
from .rewriter import UrlRewriter
from .loader_patches import LoaderPatcher
from .html_validator import RewriteValidator
from . import locators
from ..utils.urls import CdnMapper, canonicalize


@dataclass
class RewriteResult:
    html: str
    changed: bool = False
    replacement_count: int = 0
    replaced_urls: Dict[str, str] = field(default_factory=dict)
    skipped_reason: str = ""
    errors: Dict[str, Any] = field(default_factory=dict)
    validation: Dict[str, Any] = field(default_factory=dict)


class CdnRewriteEngine:
    """
    Rewrites local /static/ and /media/ asset references to the CDN.

    The engine only holds read-only configuration; all per-document state
    lives in a RewriteContext, so one engine may serve concurrent requests.
    """

    def __init__(self, config: RewriteConfig, logger: Optional[logging.Logger] = None):
        self.config = config.normalized()
        self.logger = logger or logging.getLogger(__name__)
        self.gate = DocumentGate(self.config, self.logger)
        self.mapper = CdnMapper(self.config.cdn_base_url)
        self.admission = AdmissionFilter(self.config.excluded_paths, self.config.protected_fragments, self.logger)
        self.rewriter = UrlRewriter(self.mapper, self.admission,
                                    unsecure_base_url=self.config.unsecure_base_url,
                                    secure_base_url=self.config.secure_base_url,
                                    logger=self.logger)
        self.patcher = LoaderPatcher(self.mapper, self.logger)
        self.validator = RewriteValidator(self.config.cdn_base_url)

    def rewrite(self, html: str, is_admin: AdminCheck = None, request_path: str = "") -> str:
        """Rewrite a document and return only the resulting HTML."""
        return self.process(html, is_admin=is_admin, request_path=request_path).html

    def process(self, html: str, is_admin: AdminCheck = None, request_path: str = "") -> RewriteResult:
        """
        Rewrite a document.

        Args:
            html: Response body
            is_admin: Admin-area flag or area-detection callable
            request_path: Request URI, used when area detection is unavailable

        Returns:
            RewriteResult; never raises
        """
        try:
            decision = self.gate.check(html, is_admin=is_admin, request_path=request_path)
        except Exception as e:
            self.logger.error(f"Document gate failed: {e}")
            return RewriteResult(html=html, skipped_reason='gate_error')

        if not decision.proceed:
            return RewriteResult(html=html, skipped_reason=decision.reason)

        self.logger.debug(f"Starting URL replacement with CDN base URL: {self.config.cdn_base_url}")
        ctx = RewriteContext.start(html, self.logger)

        for name, run in self._passes():
            try:
                run(ctx)
            except Exception as e:
                ctx.errors.log_error(e, context=name)

        self._log_summary(ctx)

        validation = {}
        if self.config.debug:
            validation = self.validator.validate_rewritten_content(html, ctx.html)
            if validation and not validation["structure_preserved"]:
                ctx.errors.log_warning(f"Rewrite changed element counts: {validation['changed_elements']}",
                                       context="validation")

        return RewriteResult(
            html=ctx.html,
            changed=ctx.html != html,
            replacement_count=ctx.replacement_count,
            replaced_urls=dict(ctx.replaced_urls),
            errors=ctx.errors.get_error_summary(),
            validation=validation,
        )

    def _passes(self) -> List[Tuple[str, Callable[[RewriteContext], None]]]:
        """Locator passes in priority order; the loader config pass must come first."""
        def scan(finder: Callable[[str], Iterable[Candidate]]):
            return lambda ctx: self._process_all(ctx, finder(ctx.html))

        return [
            (locators.LOADER_CONFIG, self._process_loader_config),
            (locators.MODULE_NAME, scan(locators.find_module_name_paths)),
            (locators.TEXT_PLUGIN, scan(locators.find_text_plugin_refs)),
            (locators.TAG_ATTRIBUTE, scan(locators.find_tag_attributes)),
            (locators.CONFIG_LITERAL, scan(locators.find_loader_config_literals)),
            (locators.INLINE_JSON, scan(locators.find_inline_json_urls)),
            (locators.CUSTOM_URL, lambda ctx: self._process_all(ctx, locators.find_custom_urls(self.config.custom_urls))),
            (locators.CSS_BACKGROUND, scan(locators.find_css_backgrounds)),
            (locators.DATA_JSON, scan(locators.find_data_attribute_json)),
            ('define_patch', self.patcher.insert_define_patch),
        ]

    def _process_loader_config(self, ctx: RewriteContext) -> None:
        for candidate in list(locators.find_loader_config_scripts(ctx.html)):
            target = self.process_reference(ctx, candidate)
            if not target:
                continue
            try:
                self.patcher.insert_config_redirect(ctx, target)
            except Exception as e:
                ctx.errors.log_error(e, context='config_redirect', url=candidate.raw)

    def _process_all(self, ctx: RewriteContext, candidates: Iterable[Candidate]) -> None:
        # Snapshot: candidates are located on the document as it was when the pass began
        for candidate in list(candidates):
            self.process_reference(ctx, candidate)

    def process_reference(self, ctx: RewriteContext, candidate: Candidate) -> Optional[str]:
        """
        Admit, map and rewrite one located reference.

        Returns:
            The CDN URL when the reference was admitted, otherwise None
        """
        try:
            canonical = canonicalize(candidate.raw)
            if not canonical:
                return None

            if not self.admission.admit(canonical, ctx.memo):
                return None

            target = self.mapper.target_for(canonical)
            if not target:
                ctx.memo.mark_skipped(canonical)
                return None

            count = self.rewriter.rewrite(ctx, canonical, target)
            ctx.memo.mark_rewritten(canonical)
            if count:
                self.logger.debug(f"Replaced URL ({candidate.context}): {canonical} → {target}")
            return target

        except Exception as e:
            ctx.errors.log_error(e, context=candidate.context, url=candidate.raw)
            return None

    def _log_summary(self, ctx: RewriteContext) -> None:
        if ctx.replacement_count <= 0:
            return
        self.logger.info(f"Replaced {ctx.replacement_count} URLs with CDN URLs")
        if self.config.debug:
            sample = dict(list(ctx.replaced_urls.items())[:50])
            self.logger.debug(f"Replaced URLs: {json.dumps(sample)}")
