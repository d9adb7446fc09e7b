"""
Page Retrieval Module

Downloads a rendered page so its HTML can be run through the rewriter from
the command line, with retries and exponential backoff.
"""

import requests
import time
from typing import Optional, Dict, Any
import logging
from urllib.parse import urlparse


class PageFetcher:
    """
    Fetches HTML documents over HTTP(S) for rewrite previews.
    """

    def __init__(self, request_delay: float = 0.5, max_retries: int = 2, timeout: float = 30):
        """
        Initialize the page fetcher.

        Args:
            request_delay: Base delay in seconds used for retry backoff
            max_retries: Maximum number of retry attempts for failed requests
            timeout: Per-request timeout in seconds
        """
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'cdn-rewriter/1.0 (Rewrite Preview)',
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
        })

    def fetch(self, url: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve the HTML of a page.

        Args:
            url: Page URL

        Returns:
            Dictionary containing:
            - 'html': The HTML content
            - 'url': The final URL after redirects
            - 'path': The request path of the original URL
            - 'encoding': Character encoding detected

            Returns None if the download fails after all retries
        """
        if not self._is_http_url(url):
            self.logger.error(f"Not an HTTP(S) URL: {url}")
            return None

        self.logger.info(f"Fetching page: {url}")

        for attempt in range(self.max_retries + 1):
            try:
                if attempt > 0:
                    delay = self.request_delay * (2 ** attempt)  # Exponential backoff
                    self.logger.info(f"Retry {attempt} after {delay:.1f}s delay")
                    time.sleep(delay)

                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()

                content_type = response.headers.get('content-type', '').lower()
                if 'html' not in content_type:
                    self.logger.warning(f"Non-HTML content type for {url}: {content_type}")

                result = {
                    'html': response.text,
                    'url': response.url,
                    'path': urlparse(url).path or '/',
                    'encoding': response.encoding or 'utf-8'
                }

                self.logger.info(f"Fetched {len(result['html'])} characters from {url}")
                return result

            except requests.exceptions.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else 'unknown'
                self.logger.warning(f"HTTP error {status_code} for {url} (attempt {attempt + 1})")

                # Don't retry on client errors other than rate limiting
                if isinstance(status_code, int) and 400 <= status_code < 500 and status_code != 429:
                    self.logger.error(f"Permanent error {status_code} for {url}, not retrying")
                    return None
                if attempt >= self.max_retries:
                    self.logger.error(f"Failed to fetch {url} after {self.max_retries + 1} attempts: HTTP {status_code}")
                    return None

            except requests.exceptions.RequestException as e:
                self.logger.warning(f"Request error for {url} (attempt {attempt + 1}): {e}")
                if attempt >= self.max_retries:
                    self.logger.error(f"Failed to fetch {url} after {self.max_retries + 1} attempts: {e}")
                    return None

        return None

    def _is_http_url(self, url: str) -> bool:
        try:
            parsed = urlparse(url)
            return parsed.scheme in ['http', 'https'] and bool(parsed.netloc)
        except Exception:
            return False

    def close(self):
        """Close the HTTP session."""
        self.session.close()
