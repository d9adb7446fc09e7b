"""
URL Normalization & CDN Mapping Utilities

This module reduces raw asset references to canonical local paths and maps
those paths onto the configured CDN base URL.
"""

import re
from urllib.parse import urlparse
from typing import Tuple, Optional, List


STATIC_PREFIX = '/static/'
MEDIA_PREFIX = '/media/'
LOCAL_PREFIXES = (STATIC_PREFIX, MEDIA_PREFIX)

# Extensions treated as assets when scanning JSON and loader configuration
ASSET_EXTENSIONS = ('js', 'css', 'png', 'jpg', 'jpeg', 'gif', 'svg')


def has_local_prefix(path: str) -> bool:
    """True when the path begins with /static/ or /media/."""
    return bool(path) and path.startswith(LOCAL_PREFIXES)


def canonicalize(raw: str) -> Optional[str]:
    """
    Reduce a raw reference to its canonical path.

    Scheme and host are stripped for absolute URLs and a leading '/' is
    guaranteed. Query strings on bare paths are left as found.

    Args:
        raw: Reference as it appears in the document

    Returns:
        Canonical path, or None when nothing usable remains
    """
    if not raw or not isinstance(raw, str):
        return None

    path = raw.strip()
    if not path:
        return None

    if path.startswith('http'):
        parsed = urlparse(path)
        if not parsed.path:
            return None
        path = parsed.path

    if not path.startswith('/'):
        path = '/' + path

    return path


def strip_local_prefix(path: str) -> Optional[str]:
    """
    Remove the literal /static/ or /media/ prefix.

    Returns:
        The remainder of the path, or None if neither prefix is present
    """
    if not path:
        return None
    if path.startswith(STATIC_PREFIX):
        return path[len(STATIC_PREFIX):]
    if path.startswith(MEDIA_PREFIX):
        return path[len(MEDIA_PREFIX):]
    return None


def join_cdn_url(cdn_base_url: str, remainder: str) -> str:
    """Join a CDN base and a path remainder with exactly one '/'."""
    return cdn_base_url.rstrip('/') + '/' + remainder.lstrip('/')


class CdnMapper:
    """
    Maps canonical local paths onto a CDN base URL.
    """

    def __init__(self, cdn_base_url: str):
        self.cdn_base_url = cdn_base_url.rstrip('/')

    def target_for(self, canonical: str) -> Optional[str]:
        """
        Compute the CDN URL for a canonical path.

        Args:
            canonical: Canonical local path (leading '/', no host)

        Returns:
            Target CDN URL, or None when the path is not applicable
        """
        remainder = strip_local_prefix(canonical)
        if not remainder:
            return None
        return join_cdn_url(self.cdn_base_url, remainder)

    def is_cdn_url(self, url: str) -> bool:
        """True when the URL already points at the CDN base."""
        return bool(url) and url.startswith(self.cdn_base_url + '/')


def url_variants(canonical: str, unsecure_base_url: str = "", secure_base_url: str = "") -> List[str]:
    """
    Every textual form a canonical path may take in a page.

    Args:
        canonical: Canonical local path
        unsecure_base_url: Site base URL (http)
        secure_base_url: Site base URL (https)

    Returns:
        Ordered list without duplicates
    """
    variants = [canonical, canonical.lstrip('/')]

    if unsecure_base_url:
        variants.append(unsecure_base_url.rstrip('/') + canonical)

    if secure_base_url and secure_base_url.rstrip('/') != unsecure_base_url.rstrip('/'):
        variants.append(secure_base_url.rstrip('/') + canonical)

    return [v for v in dict.fromkeys(variants) if v]


def is_asset_path(value: str) -> bool:
    """
    Check whether a string looks like a local asset reference.

    It must start with a recognized prefix and mention one of the known
    asset extensions.
    """
    if not has_local_prefix(value):
        return False
    return any(f'.{ext}' in value for ext in ASSET_EXTENSIONS)


_module_name_pattern = re.compile(r'/static/frontend/[^/]+/[^/]+/[^/]+/(.+?)\.js')


def module_name_variants(canonical: str) -> List[str]:
    """
    Infer loader module names from a themed static script path.

    /static/frontend/Vendor/theme/en_US/Magento_Ui/js/core/app.js gives
    'Magento_Ui/js/core/app' and 'Magento_Ui_js_core_app'.
    """
    if '.js' not in canonical:
        return []
    match = _module_name_pattern.search(canonical)
    if not match:
        return []
    module = match.group(1)
    return list(dict.fromkeys([module, module.replace('/', '_')]))


def validate_cdn_base_url(url: str) -> Tuple[bool, str, str]:
    """
    Validate a CDN base URL.

    Args:
        url: The configured CDN base URL

    Returns:
        Tuple of (is_valid, normalized_url, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "", "CDN base URL cannot be empty"

    url = url.strip()

    try:
        if url.startswith('//'):
            parsed = urlparse('https:' + url)
        else:
            parsed = urlparse(url)
            if parsed.scheme not in ['http', 'https']:
                return False, "", "CDN base URL must use HTTP or HTTPS protocol"

        if not parsed.netloc:
            return False, "", "CDN base URL must have a valid host"

        return True, url.rstrip('/'), ""

    except Exception as e:
        return False, "", f"CDN base URL validation error: {str(e)}"
