#!/usr/bin/env python3
"""
Engine Testing Script for cdn-rewriter

Covers the document gate, idempotence, exclusion rules, the dedup boundary,
per-candidate error isolation and the module-loader patches.
"""

import sys
import logging
from pathlib import Path

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from cdn_rewriter.core.config import RewriteConfig
from cdn_rewriter.core.engine import CdnRewriteEngine
from cdn_rewriter.core.loader_patches import CONFIG_REDIRECT_MARKER, DEFINE_PATCH_MARKER


CDN = "https://cdn.example.com/assets"

STOREFRONT_PAGE = """<html><head>
<script type="text/javascript" src="/static/frontend/Vendor/theme/en_US/requirejs/require.js"></script>
<script type="text/javascript" src="/static/frontend/Vendor/theme/en_US/requirejs-config.js"></script>
<script type="text/javascript" src="/static/mage/bootstrap.js"></script>
<link rel="stylesheet" type="text/css" href="/static/frontend/Vendor/theme/en_US/css/styles-m.css">
<style>.hero{background-image: url("/media/wysiwyg/hero.jpg")}</style>
</head><body>
<img src="/media/logo/logo.svg" srcset="/media/logo/logo.svg 1x, /media/logo/logo@2x.svg 2x">
<div data-mage-init='{"menu":{"icon":"/static/frontend/Vendor/theme/en_US/images/menu.png"}}'></div>
<script type="text/x-magento-init">{"*": {"banner": {"url": "/media/banner/sale.png"}}}</script>
</body></html>"""


def make_engine(**overrides):
    return CdnRewriteEngine(RewriteConfig(cdn_base_url=CDN, **overrides))


def test_gate_disabled():
    html = '<script src="/static/a.js"></script>'
    result = make_engine(enabled=False).process(html)
    assert result.html == html
    assert result.skipped_reason == 'disabled'


def test_gate_admin_area():
    html = '<script src="/static/a.js"></script>'
    result = make_engine().process(html, is_admin=True)
    assert result.html == html
    assert result.skipped_reason == 'admin_area'


def test_gate_area_detection_failure_falls_back_to_path():
    def broken_area_detection():
        raise RuntimeError("Area code is not set")

    html = '<script src="/static/a.js"></script>'
    engine = make_engine()

    admin = engine.process(html, is_admin=broken_area_detection, request_path='/admin/dashboard/index/')
    assert admin.skipped_reason == 'admin_path'
    assert admin.html == html

    storefront = engine.process(html, is_admin=broken_area_detection, request_path='/catalog/product/view/')
    assert storefront.skipped_reason == ''
    assert 'https://cdn.example.com/assets/a.js' in storefront.html


def test_gate_empty_document():
    result = make_engine().process('')
    assert result.html == ''
    assert result.skipped_reason == 'empty_document'


def test_gate_empty_cdn_url_warns(caplog):
    html = '<script src="/static/a.js"></script>'
    with caplog.at_level(logging.WARNING):
        result = CdnRewriteEngine(RewriteConfig(cdn_base_url='  ')).process(html)
    assert result.html == html
    assert result.skipped_reason == 'empty_cdn_url'
    assert "CDN base URL is empty" in caplog.text


def test_full_page_rewrite():
    result = make_engine().process(STOREFRONT_PAGE)
    html = result.html
    assert 'src="https://cdn.example.com/assets/frontend/Vendor/theme/en_US/requirejs/require.js"' in html
    assert 'src="https://cdn.example.com/assets/frontend/Vendor/theme/en_US/requirejs-config.js"' in html
    assert 'src="/static/mage/bootstrap.js"' in html
    assert 'href="https://cdn.example.com/assets/frontend/Vendor/theme/en_US/css/styles-m.css"' in html
    assert 'url("https://cdn.example.com/assets/wysiwyg/hero.jpg")' in html
    assert '"icon":"https://cdn.example.com/assets/frontend/Vendor/theme/en_US/images/menu.png"' in html
    assert '"url": "https://cdn.example.com/assets/banner/sale.png"' in html
    # Picked up by the loader config literal scan, then applied to srcset too
    assert ('<img src="https://cdn.example.com/assets/logo/logo.svg" '
            'srcset="https://cdn.example.com/assets/logo/logo.svg 1x, /media/logo/logo@2x.svg 2x">') in html
    assert result.replacement_count >= 8
    assert result.errors['total_errors'] == 0


def test_idempotent_second_pass():
    engine = make_engine(custom_urls=['/media/logo/logo.svg'])
    first = engine.process(STOREFRONT_PAGE)
    second = engine.process(first.html)
    assert first.changed
    assert second.html == first.html
    assert second.replacement_count == 0


def test_exclusion_is_exact_match():
    html = ('<script src="/static/mage/bootstrap.js"></script>'
            '<script src="/static/frontend/Vendor/theme/en_US/mage/bootstrap.js"></script>')
    out = make_engine().rewrite(html)
    assert '<script src="/static/mage/bootstrap.js">' in out
    assert '<script src="https://cdn.example.com/assets/frontend/Vendor/theme/en_US/mage/bootstrap.js">' in out


def test_protected_module_overrides_exclusion():
    protected = make_engine(excluded_paths=['/jquery/ui-modules/widget.js'])
    out = protected.rewrite('<script src="/static/jquery/ui-modules/widget.js"></script>')
    assert out == '<script src="https://cdn.example.com/assets/jquery/ui-modules/widget.js"></script>'

    plain = make_engine(excluded_paths=['/jquery/widget.js'])
    html = '<script src="/static/jquery/widget.js"></script>'
    assert plain.rewrite(html) == html


def test_admission_decided_once_for_all_frames():
    html = ('<link rel="icon" href="/static/img/logo.png">'
            '<div style="background-image: url(/static/img/logo.png)"></div>'
            '<script>var logo = "/static/img/logo.png";</script>')
    engine = make_engine()
    decisions = []
    original_admit = engine.admission.admit

    def recording_admit(canonical, memo):
        admitted = original_admit(canonical, memo)
        decisions.append((canonical, admitted))
        return admitted

    engine.admission.admit = recording_admit
    out = engine.rewrite(html)

    assert [c for c, admitted in decisions if admitted] == ['/static/img/logo.png']
    assert out.count('https://cdn.example.com/assets/img/logo.png') == 3
    assert '/static/img/logo.png' not in out


def test_failure_on_one_candidate_does_not_abort(caplog):
    engine = make_engine()
    original_rewrite = engine.rewriter.rewrite

    def flaky_rewrite(ctx, canonical, target):
        if 'broken' in canonical:
            raise RuntimeError("boom")
        return original_rewrite(ctx, canonical, target)

    engine.rewriter.rewrite = flaky_rewrite
    html = '<script src="/static/broken.js"></script><script src="/static/ok.js"></script>'
    with caplog.at_level(logging.ERROR):
        result = engine.process(html)

    assert '<script src="/static/broken.js">' in result.html
    assert '<script src="https://cdn.example.com/assets/ok.js">' in result.html
    assert result.errors['total_errors'] == 1
    assert result.errors['error_types'] == {'RuntimeError': 1}
    assert '/static/broken.js' in caplog.text


def test_invocations_do_not_share_memo():
    engine = make_engine()
    html = '<script src="/static/a.js"></script>'
    assert engine.rewrite(html) == '<script src="https://cdn.example.com/assets/a.js"></script>'
    assert engine.rewrite(html) == '<script src="https://cdn.example.com/assets/a.js"></script>'


def test_summary_logged(caplog):
    with caplog.at_level(logging.INFO):
        make_engine().process('<script src="/static/a.js"></script>')
    assert "Replaced 1 URLs with CDN URLs" in caplog.text


def test_debug_mode_logs_replacements(caplog):
    with caplog.at_level(logging.DEBUG):
        make_engine(debug=True).process('<script src="/static/a.js"></script>')
    assert "/static/a.js → https://cdn.example.com/assets/a.js" in caplog.text
    assert "Replaced URLs:" in caplog.text


def test_config_redirect_inserted_after_config_script():
    out = make_engine().rewrite(STOREFRONT_PAGE)
    config_tag = ('<script type="text/javascript" '
                  'src="https://cdn.example.com/assets/frontend/Vendor/theme/en_US/requirejs-config.js"></script>')
    assert out.count(CONFIG_REDIRECT_MARKER) == 1
    assert out.index(config_tag) + len(config_tag) == out.index('<script type="text/javascript" ' + CONFIG_REDIRECT_MARKER)
    assert "baseUrl: \"https://cdn.example.com/assets/\"" in out


def test_define_patch_inserted_once_after_loader():
    engine = make_engine()
    first = engine.rewrite(STOREFRONT_PAGE)
    loader_tag = ('<script type="text/javascript" '
                  'src="https://cdn.example.com/assets/frontend/Vendor/theme/en_US/requirejs/require.js"></script>')
    assert first.count(DEFINE_PATCH_MARKER) == 1
    assert first.index(loader_tag) + len(loader_tag) == first.index('<script type="text/javascript" ' + DEFINE_PATCH_MARKER)
    assert 'window.define[prop] = originalDefine[prop];' in first

    second = engine.rewrite(first)
    assert second.count(DEFINE_PATCH_MARKER) == 1
    assert second.count(CONFIG_REDIRECT_MARKER) == 1


def test_define_patch_without_loader_tag_goes_before_body_close():
    html = '<html><body><script>requirejs(["jquery"], function ($) {});</script></body></html>'
    out = make_engine().rewrite(html)
    assert out.index(DEFINE_PATCH_MARKER) < out.index('</body>')


def test_no_loader_no_patch():
    out = make_engine().rewrite('<link rel="stylesheet" href="/static/a.css">')
    assert DEFINE_PATCH_MARKER not in out


def test_debug_validation_reports_structure():
    html = ('<html><head><link rel="stylesheet" href="/static/css/a.css"></head>'
            '<body><img src="/media/a.png"></body></html>')
    result = make_engine(debug=True).process(html)
    assert result.validation['structure_preserved'] is True
    assert result.validation['local_references'] == {'original': 2, 'rewritten': 1}
    assert result.validation['cdn_references'] == 1


if __name__ == "__main__":
    test_gate_disabled()
    test_full_page_rewrite()
    test_idempotent_second_pass()
    test_exclusion_is_exact_match()
    test_admission_decided_once_for_all_frames()
    print("✓ engine tests passed")
