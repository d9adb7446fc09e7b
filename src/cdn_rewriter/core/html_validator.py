"""
Rewritten Output Validation Module

Compares a document before and after CDN rewriting to confirm that the
rewrite only moved asset locations and did not add, drop or break elements.
"""

from bs4 import BeautifulSoup
import logging

from ..utils.urls import has_local_prefix


TRACKED_ELEMENTS = ['script', 'link', 'img', 'source', 'style']


class RewriteValidator:
    """
    Structural sanity check for rewritten HTML.

    Parsing is only done on demand (debug mode or the --validate CLI flag)
    since the rewrite itself never builds a DOM.
    """

    def __init__(self, cdn_base_url: str = ""):
        self.logger = logging.getLogger(__name__)
        self.cdn_base_url = cdn_base_url.rstrip('/')

    def validate_rewritten_content(self, original_html: str, rewritten_html: str) -> dict:
        """
        Validate that rewriting preserved the document structure.

        Args:
            original_html: HTML before rewriting
            rewritten_html: HTML after rewriting

        Returns:
            Dictionary with validation results, empty if parsing failed
        """
        try:
            original_soup = BeautifulSoup(original_html, 'lxml')
            rewritten_soup = BeautifulSoup(rewritten_html, 'lxml')

            original_counts = self._count_elements(original_soup)
            rewritten_counts = self._count_elements(rewritten_soup)

            changed_elements = {
                name: (original_counts[name], rewritten_counts[name])
                for name in TRACKED_ELEMENTS
                # Loader patches add scripts, never remove them
                if original_counts[name] != rewritten_counts[name]
                and not (name == 'script' and rewritten_counts[name] > original_counts[name])
            }

            return {
                'original_size': len(original_html),
                'rewritten_size': len(rewritten_html),
                'element_counts': {
                    'original': original_counts,
                    'rewritten': rewritten_counts
                },
                'changed_elements': changed_elements,
                'structure_preserved': not changed_elements,
                'local_references': {
                    'original': self._count_local_references(original_soup),
                    'rewritten': self._count_local_references(rewritten_soup)
                },
                'cdn_references': self._count_cdn_references(rewritten_soup)
            }

        except Exception as e:
            self.logger.error(f"Validation failed: {e}")
            return {}

    def _count_elements(self, soup: BeautifulSoup) -> dict:
        return {name: len(soup.find_all(name)) for name in TRACKED_ELEMENTS}

    def _iter_reference_values(self, soup: BeautifulSoup):
        for attr in ('src', 'href', 'data-src'):
            for element in soup.find_all(attrs={attr: True}):
                yield element[attr]

    def _count_local_references(self, soup: BeautifulSoup) -> int:
        """Count src/href/data-src values still pointing at a local prefix."""
        return sum(1 for value in self._iter_reference_values(soup) if has_local_prefix(value))

    def _count_cdn_references(self, soup: BeautifulSoup) -> int:
        if not self.cdn_base_url:
            return 0
        return sum(1 for value in self._iter_reference_values(soup)
                   if value.startswith(self.cdn_base_url + '/'))
