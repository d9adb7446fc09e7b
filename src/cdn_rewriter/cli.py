"""Command-line entry point: preview CDN rewriting for a local file or live page."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from .core.config import RewriteConfig
from .core.engine import CdnRewriteEngine
from .core.logger import initialize_logging
from .utils.page_fetcher import PageFetcher
from .utils.report import RewriteReport
from .utils.urls import validate_cdn_base_url

logger = logging.getLogger("cdn_rewriter.cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rewrite /static/ and /media/ asset URLs in an HTML document to a CDN.",
    )
    parser.add_argument("source", help="HTML file path or http(s) page URL")
    parser.add_argument("--cdn-url", help="CDN base URL (overrides the config file)")
    parser.add_argument("--config", type=Path, help="JSON file with rewrite settings")
    parser.add_argument("--base-url", help="Site base URL used for absolute references")
    parser.add_argument("--secure-base-url", help="Secure site base URL, when different")
    parser.add_argument(
        "--custom-url",
        action="append",
        default=[],
        help="Additional asset URL to rewrite; may be repeated",
    )
    parser.add_argument("--output", type=Path, help="Write rewritten HTML here instead of stdout")
    parser.add_argument("--report", help="Append replaced URLs to this JSON Lines report")
    parser.add_argument("--admin", action="store_true", help="Treat the request as an admin-area request")
    parser.add_argument("--request-path", default="", help="Request URI used for admin detection")
    parser.add_argument("--validate", action="store_true", help="Compare element counts before and after")
    parser.add_argument("--log-dir", default="logs", help="Directory for log files")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging and per-URL details")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RewriteConfig:
    config = RewriteConfig.from_json_file(str(args.config)) if args.config else RewriteConfig()
    if args.cdn_url:
        config.cdn_base_url = args.cdn_url
    if args.base_url:
        config.unsecure_base_url = args.base_url
    if args.secure_base_url:
        config.secure_base_url = args.secure_base_url
    if args.custom_url:
        config.custom_urls = list(config.custom_urls) + list(args.custom_url)
    if args.debug:
        config.debug = True
    return config


def load_source(source: str, config: RewriteConfig, args: argparse.Namespace) -> Optional[str]:
    parsed = urlparse(source)
    if parsed.scheme in ('http', 'https'):
        fetcher = PageFetcher()
        try:
            page = fetcher.fetch(source)
        finally:
            fetcher.close()
        if not page:
            return None
        if not config.unsecure_base_url:
            config.unsecure_base_url = f"{parsed.scheme}://{parsed.netloc}"
        if not args.request_path:
            args.request_path = page['path']
        return page['html']

    try:
        return Path(source).read_text(encoding='utf-8')
    except OSError as e:
        logger.error(f"Cannot read {source}: {e}")
        return None


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    initialize_logging(args.log_dir, logging.DEBUG if args.debug else logging.INFO)

    config = build_config(args)
    ok, _, error = validate_cdn_base_url(config.cdn_base_url)
    if not ok:
        logger.warning(f"CDN base URL problem: {error}")

    html = load_source(args.source, config, args)
    if html is None:
        return 1

    engine = CdnRewriteEngine(config)
    result = engine.process(html, is_admin=True if args.admin else None, request_path=args.request_path)

    if result.skipped_reason:
        logger.info(f"Document not rewritten: {result.skipped_reason}")

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(result.html, encoding='utf-8')
        logger.info(f"Wrote {args.output}")
    else:
        sys.stdout.write(result.html)

    if args.report and result.replaced_urls:
        written = RewriteReport(args.report).append_result(args.source, result.replaced_urls)
        logger.info(f"Recorded {written} replacements in {args.report}")

    if args.validate:
        validation = result.validation or engine.validator.validate_rewritten_content(html, result.html)
        sys.stderr.write(json.dumps(validation, indent=2) + "\n")

    if result.errors.get('total_errors'):
        logger.warning(f"{result.errors['total_errors']} references could not be processed")

    return 0


if __name__ == "__main__":
    sys.exit(main())
