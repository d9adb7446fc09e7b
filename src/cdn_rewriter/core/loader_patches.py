"""
Module-loader post-processing.

Inserts the small inline scripts that keep the page's AMD loader pointed at
the CDN: a configuration redirect after the loader's config script, and a
define() wrapper for modules registered after the initial render.
"""

from __future__ import annotations

import re
import json
import time
import logging
from typing import Optional

from .context import RewriteContext
from ..utils.urls import CdnMapper, LOCAL_PREFIXES

PATCH_MARKER_ATTR = 'data-cdn-rewriter'
CONFIG_REDIRECT_MARKER = f'{PATCH_MARKER_ATTR}="config-redirect"'
DEFINE_PATCH_MARKER = f'{PATCH_MARKER_ATTR}="define-patch"'

CONFIG_REDIRECT_TEMPLATE = """<script type="text/javascript" {marker}>
    require.config({{
        urlArgs: {url_args},
        baseUrl: {base_url}
    }});
</script>"""

DEFINE_PATCH_TEMPLATE = """<script type="text/javascript" {marker}>
(function () {{
    var cdnBaseUrl = {base_url};
    var prefixes = {prefixes};
    var originalDefine = window.define;
    if (!originalDefine) {{
        return;
    }}
    function toCdn(dep) {{
        if (typeof dep !== 'string') {{
            return dep;
        }}
        for (var i = 0; i < prefixes.length; i++) {{
            if (dep.indexOf(prefixes[i]) === 0) {{
                return cdnBaseUrl + dep.substring(prefixes[i].length);
            }}
        }}
        return dep;
    }}
    window.define = function () {{
        var args = Array.prototype.slice.call(arguments).map(function (arg) {{
            return Array.isArray(arg) ? arg.map(toCdn) : arg;
        }});
        return originalDefine.apply(window, args);
    }};
    for (var prop in originalDefine) {{
        if (Object.prototype.hasOwnProperty.call(originalDefine, prop)) {{
            window.define[prop] = originalDefine[prop];
        }}
    }}
}})();
</script>"""

LOADER_SCRIPT_PATTERN = re.compile(
    r"""<script[^>]*\ssrc=['"][^'"]*require(?:\.min)?\.js[^'"]*['"][^>]*>\s*</script>""",
    re.I,
)
BODY_CLOSE_PATTERN = re.compile(r'</body\s*>', re.I)


class LoaderPatcher:
    def __init__(self, mapper: CdnMapper, logger: Optional[logging.Logger] = None):
        self.mapper = mapper
        self.logger = logger or logging.getLogger(__name__)

    def config_redirect_script(self) -> str:
        return CONFIG_REDIRECT_TEMPLATE.format(
            marker=CONFIG_REDIRECT_MARKER,
            url_args=json.dumps(f"v={int(time.time())}"),
            base_url=json.dumps(self.mapper.cdn_base_url + '/'),
        )

    def define_patch_script(self) -> str:
        return DEFINE_PATCH_TEMPLATE.format(
            marker=DEFINE_PATCH_MARKER,
            base_url=json.dumps(self.mapper.cdn_base_url + '/'),
            prefixes=json.dumps(list(LOCAL_PREFIXES)),
        )

    def insert_config_redirect(self, ctx: RewriteContext, config_cdn_url: str) -> int:
        """
        Insert the loader reconfiguration after each config script tag.

        The tag is found by its already rewritten CDN src, so this must run
        after the tag itself was rewritten. Tags already followed by a
        redirect are left alone.

        Returns:
            Number of redirects inserted
        """
        pattern = re.compile(
            r"""<script[^>]*\ssrc=(['"])""" + re.escape(config_cdn_url) + r"""\1[^>]*>\s*</script>""",
            re.I,
        )
        inserted = 0

        def repl(m):
            nonlocal inserted
            if m.string[m.end():].lstrip().startswith(f'<script type="text/javascript" {CONFIG_REDIRECT_MARKER}'):
                return m.group(0)
            inserted += 1
            return m.group(0) + self.config_redirect_script()

        ctx.html = pattern.sub(repl, ctx.html)
        if inserted:
            self.logger.debug(f"Inserted loader config redirect after {config_cdn_url}")
        return inserted

    def insert_define_patch(self, ctx: RewriteContext) -> bool:
        """
        Wrap the loader's define() once per document.

        Returns:
            True when the patch was inserted by this call
        """
        html = ctx.html
        if 'require.js' not in html and 'requirejs' not in html:
            return False
        if DEFINE_PATCH_MARKER in html:
            return False

        script = self.define_patch_script()
        m = LOADER_SCRIPT_PATTERN.search(html)
        if m:
            ctx.html = html[:m.end()] + script + html[m.end():]
        else:
            body = None
            for body in BODY_CLOSE_PATTERN.finditer(html):
                pass
            if body:
                ctx.html = html[:body.start()] + script + html[body.start():]
            else:
                ctx.html = html + script

        self.logger.debug("Inserted loader define() patch")
        return True
