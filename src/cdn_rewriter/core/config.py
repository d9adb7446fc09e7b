"""
Rewrite configuration.

Values are supplied by the host application (or a JSON file for the
command line) and are read-only for the engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List


# Loader bootstrap files that must stay on the origin
DEFAULT_EXCLUDED_PATHS = [
    '/requirejs/require.js',
    '/mage/requirejs/mixins.js',
    '/mage/polyfill.js',
    '/mage/bootstrap.js',
]

# Namespaces served from the CDN even when they resemble an excluded entry
DEFAULT_PROTECTED_FRAGMENTS = [
    'jquery/ui-modules/',
    'Magento_Ui/js/',
    'mage/utils/',
]

LOADER_CONFIG_MARKER = 'requirejs-config.js'
ADMIN_PATH_MARKER = '/admin/'


@dataclass
class RewriteConfig:
    cdn_base_url: str = ""
    enabled: bool = True
    custom_urls: List[str] = field(default_factory=list)
    debug: bool = False
    unsecure_base_url: str = ""
    secure_base_url: str = ""
    excluded_paths: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_PATHS))
    protected_fragments: List[str] = field(default_factory=lambda: list(DEFAULT_PROTECTED_FRAGMENTS))

    def normalized(self) -> "RewriteConfig":
        """Copy with trailing separators stripped from every base URL."""
        return replace(
            self,
            cdn_base_url=(self.cdn_base_url or "").strip().rstrip('/'),
            unsecure_base_url=(self.unsecure_base_url or "").strip().rstrip('/'),
            secure_base_url=(self.secure_base_url or "").strip().rstrip('/'),
            custom_urls=[u.strip() for u in self.custom_urls if u and u.strip()],
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewriteConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_json_file(cls, path: str) -> "RewriteConfig":
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))
