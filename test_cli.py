#!/usr/bin/env python3
"""
Command line smoke tests for cdn-rewriter.
"""

import sys
import json
import logging
from pathlib import Path

import pytest

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from cdn_rewriter.cli import main, parse_args, build_config


CDN = "https://cdn.example.com/assets"


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    package_logger = logging.getLogger("cdn_rewriter")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()


def test_build_config_overrides_file(tmp_path):
    config_file = tmp_path / "cdn.json"
    config_file.write_text(json.dumps({
        "cdn_base_url": "https://old-cdn.example.com",
        "custom_urls": ["/media/a.png"],
    }), encoding='utf-8')

    args = parse_args(["page.html", "--config", str(config_file),
                       "--cdn-url", CDN, "--custom-url", "/media/b.png"])
    config = build_config(args)
    assert config.cdn_base_url == CDN
    assert config.custom_urls == ["/media/a.png", "/media/b.png"]


def test_rewrites_file_and_writes_report(tmp_path):
    source = tmp_path / "page.html"
    source.write_text('<script src="/static/js/app.js"></script>', encoding='utf-8')
    output = tmp_path / "out" / "page.html"
    report = tmp_path / "report.jsonl"

    code = main([str(source), "--cdn-url", CDN,
                 "--output", str(output),
                 "--report", str(report),
                 "--log-dir", str(tmp_path / "logs")])

    assert code == 0
    assert output.read_text(encoding='utf-8') == '<script src="https://cdn.example.com/assets/js/app.js"></script>'
    records = [json.loads(line) for line in report.read_text(encoding='utf-8').splitlines()]
    assert records[0]['original'] == '/static/js/app.js'
    assert records[0]['target'] == 'https://cdn.example.com/assets/js/app.js'
    assert (tmp_path / "logs" / "cdn_rewriter.log").exists()


def test_admin_flag_leaves_document_alone(tmp_path):
    source = tmp_path / "page.html"
    html = '<script src="/static/js/app.js"></script>'
    source.write_text(html, encoding='utf-8')
    output = tmp_path / "page.out.html"

    code = main([str(source), "--cdn-url", CDN, "--admin",
                 "--output", str(output), "--log-dir", str(tmp_path / "logs")])

    assert code == 0
    assert output.read_text(encoding='utf-8') == html


def test_missing_source_returns_error(tmp_path):
    code = main([str(tmp_path / "missing.html"), "--cdn-url", CDN,
                 "--log-dir", str(tmp_path / "logs")])
    assert code == 1


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
