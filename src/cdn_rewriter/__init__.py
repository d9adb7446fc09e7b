"""
cdn-rewriter: Static & Media Asset CDN URL Rewriter

Rewrites references to locally served static and media assets inside
rendered HTML (including inline CSS, JSON and module-loader configuration)
so that they are served from a content-delivery endpoint instead.
"""

__version__ = "1.0"
__author__ = "cdn-rewriter Project"
__description__ = "Static & Media Asset CDN URL Rewriter"
