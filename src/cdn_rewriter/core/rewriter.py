"""
Asset URL rewriting.

Given one resolved (canonical path, CDN URL) pair, this module replaces every
textual form of that path in the document: attribute values, CSS url(),
loader text-plugin references, generic quoted strings, loader configuration
tables, data-mage-init JSON and srcset lists.
"""

from __future__ import annotations

import re
import json
import logging
from typing import List, Optional, Pattern

from .admission import AdmissionFilter
from .context import RewriteContext
from ..utils.json_walk import iter_strings, set_at
from ..utils.urls import (
    CdnMapper,
    canonicalize,
    has_local_prefix,
    module_name_variants,
    url_variants,
)


# Each frame has three groups: opening context, the path, closing context
FRAME_TEMPLATES = [
    r"""(\s(?i:src|href|data-[\w:.-]*)=")({path})(")""",
    r"""(\s(?i:src|href|data-[\w:.-]*)=')({path})(')""",
    r"""(url\(\s*")({path})("\s*\))""",
    r"""(url\(\s*')({path})('\s*\))""",
    r"""(url\(\s*)({path})(\s*\))""",
    r"""(text!")({path})(")""",
    r"""(text!')({path})(')""",
    r"""(text!)({path})(["'])""",
    r"""(["'])({path})(["'])""",
]

MAGE_INIT_PATTERN = re.compile(r"""data-mage-init=(['"])(.+?)\1""", re.S)
SRCSET_PATTERN = re.compile(r"""(srcset=)(['"])([^'"]+)(\2)""", re.I)


class UrlRewriter:
    def __init__(self,
                 mapper: CdnMapper,
                 admission: AdmissionFilter,
                 unsecure_base_url: str = "",
                 secure_base_url: str = "",
                 logger: Optional[logging.Logger] = None):
        self.mapper = mapper
        self.admission = admission
        self.unsecure_base_url = unsecure_base_url
        self.secure_base_url = secure_base_url
        self.logger = logger or logging.getLogger(__name__)

    def rewrite(self, ctx: RewriteContext, canonical: str, target: str) -> int:
        """
        Replace every occurrence of canonical (in all its variants) by target.

        Args:
            ctx: Invocation context; ctx.html is updated in place
            canonical: Canonical local path
            target: CDN URL to substitute

        Returns:
            Number of substitutions made
        """
        before = ctx.replacement_count

        self._rewrite_module_tables(ctx, canonical)

        for variant in url_variants(canonical, self.unsecure_base_url, self.secure_base_url):
            if variant.startswith('http'):
                occurrences = ctx.html.count(variant)
                if occurrences:
                    ctx.html = ctx.html.replace(variant, target)
                    ctx.record(canonical, target, occurrences)
                continue

            for frame in self._frames(variant):
                ctx.html, n = frame.subn(lambda m: m.group(1) + target + m.group(3), ctx.html)
                ctx.record(canonical, target, n)

        self._rewrite_mage_init(ctx, canonical, target)
        self._rewrite_srcset(ctx, canonical, target)

        return ctx.replacement_count - before

    def _frames(self, variant: str) -> List[Pattern]:
        escaped = re.escape(variant)
        return [re.compile(template.format(path=escaped)) for template in FRAME_TEMPLATES]

    def _rewrite_module_tables(self, ctx: RewriteContext, canonical: str) -> None:
        """Rewrite 'module': '/static/...' entries of inline loader configuration."""
        for module in module_name_variants(canonical):
            pattern = re.compile(
                r"""(['"])(""" + re.escape(module) + r""")(\1\s*:\s*)(['"])([^'")]+)(\4)""",
                re.I,
            )

            def repl(m):
                value = canonicalize(m.group(5))
                if not value or not has_local_prefix(m.group(5)) or self.admission.is_excluded(value):
                    return m.group(0)
                mapped = self.mapper.target_for(value)
                if not mapped:
                    return m.group(0)
                ctx.record(value, mapped)
                return m.group(1) + m.group(2) + m.group(3) + m.group(4) + mapped + m.group(6)

            ctx.html = pattern.sub(repl, ctx.html)

    def _rewrite_mage_init(self, ctx: RewriteContext, canonical: str, target: str) -> None:
        """Replace exact JSON string values inside data-mage-init attributes."""

        def repl(m):
            quote, raw = m.group(1), m.group(2)
            try:
                data = json.loads(raw)
            except ValueError as e:
                self.logger.debug(f"Error processing data-mage-init JSON: {e}")
                return m.group(0)

            hits = [loc for loc, text in iter_strings(data) if text == canonical]
            if not hits:
                return m.group(0)
            for loc in hits:
                set_at(data, loc, target)

            encoded = json.dumps(data, ensure_ascii=False, separators=(',', ':'))
            if quote in encoded:
                # Re-encoded value would terminate the attribute early
                return m.group(0)
            ctx.record(canonical, target)
            return f"data-mage-init={quote}{encoded}{quote}"

        ctx.html = MAGE_INIT_PATTERN.sub(repl, ctx.html)

    def _rewrite_srcset(self, ctx: RewriteContext, canonical: str, target: str) -> None:
        """Replace srcset entries that contain an already resolved path."""

        def repl(m):
            entries = [e.strip() for e in m.group(3).split(',') if e.strip()]
            modified = False
            for i, entry in enumerate(entries):
                parts = entry.split(None, 1)
                entry_url = parts[0]
                if canonical in entry_url and not self.mapper.is_cdn_url(entry_url):
                    entries[i] = target + (' ' + parts[1] if len(parts) > 1 else '')
                    modified = True
            if not modified:
                return m.group(0)
            ctx.record(canonical, target)
            return m.group(1) + m.group(2) + ', '.join(entries) + m.group(4)

        ctx.html = SRCSET_PATTERN.sub(repl, ctx.html)
