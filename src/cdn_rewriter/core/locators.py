"""
Reference locators.

Each locator scans the document text for one syntactic context and yields
Candidates. Locators never deduplicate and never modify the document; the
engine's memo cache makes repeated candidates harmless.
"""

from __future__ import annotations

import re
import json
import logging
from typing import Iterable, Iterator, List

from .config import LOADER_CONFIG_MARKER
from .context import Candidate
from ..utils.json_walk import iter_asset_candidates
from ..utils.urls import has_local_prefix, canonicalize

logger = logging.getLogger(__name__)

LOADER_CONFIG = 'loader_config'
MODULE_NAME = 'module_name'
TEXT_PLUGIN = 'text_plugin'
TAG_ATTRIBUTE = 'tag_attribute'
CONFIG_LITERAL = 'config_literal'
INLINE_JSON = 'inline_json'
CUSTOM_URL = 'custom_url'
CSS_BACKGROUND = 'css_background'
DATA_JSON = 'data_json'

LOADER_CONFIG_PATTERN = re.compile(
    r"""<script[^>]*\ssrc=['"]([^'"]*""" + re.escape(LOADER_CONFIG_MARKER) + r"""[^'"]*)['"][^>]*>""",
    re.I,
)
REQUIRE_MODULE_PATTERN = re.compile(r"""data-requiremodule=['"](.*?)['"]""", re.I)
TEXT_PLUGIN_PATTERN = re.compile(r"""text!(['"])?([^'"!\s,)\]]+)(['"])?""", re.I)
TAG_ATTRIBUTE_PATTERNS = [
    re.compile(r"""<script[^>]*\ssrc=['"]([^'"]+)['"][^>]*>""", re.I),
    re.compile(r"""<script[^>]*\sdata-requiremodule=['"]([^'"]+)['"][^>]*>""", re.I),
    re.compile(r"""<link[^>]*\shref=['"]([^'"]+)['"][^>]*>""", re.I),
]
CONFIG_LITERAL_PATTERN = re.compile(r'"([^"]+\.(?:js|css|png|jpeg|jpg|gif|svg))"')
INLINE_JSON_PATTERN = re.compile(r"""\{[^}]+"url":\s*["']([^"']+)["']""", re.I)
CSS_BACKGROUND_PATTERN = re.compile(r"""background(?:-image)?:\s*url\(\s*['"]?([^'")\s]+)['"]?\s*\)""", re.I)
DATA_ATTRIBUTE_PATTERN = re.compile(r"""\sdata-[\w:.-]+=(["'])(.*?)\1""", re.S)

# Where a loader module name may live under a themed static tree.
# '*' stands in for the unknown area/vendor/theme/locale segments.
MODULE_PATH_TEMPLATES = [
    '/static/frontend/*/{name}.js',
    '/static/frontend/*/{name}.min.js',
    '/static/frontend/*/{name}/main.js',
    '/static/frontend/*/{name}/main.min.js',
    '/static/frontend/*/mage/{name}.js',
    '/static/frontend/*/mage/{name}.min.js',
    '/static/frontend/*/mage/utils/{name}.js',
    '/static/frontend/*/mage/utils/{name}.min.js',
    '/static/frontend/*/jquery/{name}.js',
    '/static/frontend/*/jquery/{name}.min.js',
    '/static/frontend/*/jquery/ui-modules/{name}.js',
    '/static/frontend/*/jquery/ui-modules/{name}.min.js',
    '/static/frontend/*/Magento_Ui/js/{name}.js',
    '/static/frontend/*/Magento_Ui/js/{name}.min.js',
    '/static/frontend/*/Magento_Ui/js/lib/{name}.js',
    '/static/frontend/*/Magento_Ui/js/lib/{name}.min.js',
]


def find_loader_config_scripts(html: str) -> Iterator[Candidate]:
    """Script tags loading the module loader's configuration file."""
    for m in LOADER_CONFIG_PATTERN.finditer(html):
        yield Candidate(m.group(1), LOADER_CONFIG, m.span(1))


def module_path_patterns(module_name: str) -> List[re.Pattern]:
    """Compile the quoted-string patterns a module name may resolve to."""
    patterns = []
    for template in MODULE_PATH_TEMPLATES:
        path = re.escape(template.format(name=module_name)).replace(r'\*', r"""[^"']+""")
        patterns.append(re.compile(r"""(['"])(""" + path + r""")(['"])""", re.I))
    return patterns


def find_module_name_paths(html: str) -> Iterator[Candidate]:
    """Paths that data-requiremodule names plausibly resolve to (best effort)."""
    for m in REQUIRE_MODULE_PATTERN.finditer(html):
        name = m.group(1).strip()
        if not name:
            continue
        if name.startswith('/'):
            yield Candidate(name, MODULE_NAME, m.span(1))
            continue
        for pattern in module_path_patterns(name):
            for found in pattern.finditer(html):
                yield Candidate(found.group(2), MODULE_NAME, found.span(2))


def find_text_plugin_refs(html: str) -> Iterator[Candidate]:
    """text!/static/... references, quoted or not."""
    for m in TEXT_PLUGIN_PATTERN.finditer(html):
        if has_local_prefix(m.group(2)):
            yield Candidate(m.group(2), TEXT_PLUGIN, m.span(2))


def find_tag_attributes(html: str) -> Iterator[Candidate]:
    """script src / data-requiremodule and link href values under a local prefix."""
    for pattern in TAG_ATTRIBUTE_PATTERNS:
        for m in pattern.finditer(html):
            if has_local_prefix(m.group(1)):
                yield Candidate(m.group(1), TAG_ATTRIBUTE, m.span(1))


def find_loader_config_literals(html: str) -> Iterator[Candidate]:
    """Quoted asset paths anywhere, once loader configuration is present."""
    if 'requirejs-config' not in html:
        return
    for m in CONFIG_LITERAL_PATTERN.finditer(html):
        if has_local_prefix(m.group(1)):
            yield Candidate(m.group(1), CONFIG_LITERAL, m.span(1))


def find_inline_json_urls(html: str) -> Iterator[Candidate]:
    """{"url": "/static/..."} fragments."""
    for m in INLINE_JSON_PATTERN.finditer(html):
        if has_local_prefix(m.group(1)):
            yield Candidate(m.group(1), INLINE_JSON, m.span(1))


def find_custom_urls(custom_urls: Iterable[str]) -> Iterator[Candidate]:
    """Operator supplied URLs, in configured order, reduced to their path."""
    for url in custom_urls:
        path = canonicalize(url) if url.startswith('http') else url
        if path:
            yield Candidate(path, CUSTOM_URL)


def find_css_backgrounds(html: str) -> Iterator[Candidate]:
    """background / background-image url() values, data URIs excluded."""
    for m in CSS_BACKGROUND_PATTERN.finditer(html):
        url = m.group(1)
        if url.lower().startswith('data:'):
            continue
        if has_local_prefix(url):
            yield Candidate(url, CSS_BACKGROUND, m.span(1))


def find_data_attribute_json(html: str) -> Iterator[Candidate]:
    """String leaves of JSON held in data-* attributes."""
    for m in DATA_ATTRIBUTE_PATTERN.finditer(html):
        value = m.group(2).strip()
        if not value.startswith(('{', '[')):
            continue
        try:
            data = json.loads(value)
        except ValueError as e:
            logger.debug(f"Skipping data attribute with malformed JSON: {e}")
            continue
        for _, path in iter_asset_candidates(data):
            yield Candidate(path, DATA_JSON, m.span(2))
