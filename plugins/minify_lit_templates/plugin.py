"""
An MkDocs plugin to minify the HTML and CSS embedded in tagged template literals of built JS/TS assets
"""

import json
import logging
from pathlib import Path
from typing import Optional

from mkdocs.config import config_options as c
from mkdocs.config.defaults import MkDocsConfig
from mkdocs.plugins import BasePlugin, event_priority

from .options import DEFAULT_INCLUDE, resolve_options
from .transform import TemplateMinifier, TransformResult

# Use MkDocs' recommended plugin logger namespace so debug logs appear only with `--verbose`.
logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

SOURCE_MAP_COMMENT = "//# sourceMappingURL="


class MinifyLitTemplatesPlugin(BasePlugin):
    """MkDocs plugin that shrinks markup inside `html`/`css` tagged templates.

    Configuration options (all optional):
    - include (str|list): Glob patterns (relative to site_dir) of files to process.
    - exclude (str|list): Glob patterns of files to leave alone.
    - html_options (dict): Options merged over the htmlmin defaults.
    - css_options (dict): Options merged over the csscompressor defaults.
    - sourcemap (bool): Write `<file>.map` next to rewritten files and link it.
    - debug (bool): Log per-template decisions (shown with `--verbose`).
    """

    config_scheme = (
        ('include',      c.Type((str, list), default=list(DEFAULT_INCLUDE))),
        ('exclude',      c.Type((str, list), default=[])),
        ('html_options', c.Type(dict, default={})),
        ('css_options',  c.Type(dict, default={})),
        ('sourcemap',    c.Type(bool, default=False)),
        ('debug',        c.Type(bool, default=False)),
    )

    def __init__(self):
        super().__init__()
        self._minifier: Optional[TemplateMinifier] = None

    # -------------------------------
    # Helpers
    # -------------------------------

    def _debug_enabled(self) -> bool:
        return bool(self.config.get("debug", False))

    def _dbg(self, msg: str, *args) -> None:
        """Debug log gated by plugin config."""
        if not self._debug_enabled():
            return

        logger.debug("[minify_lit_templates] " + msg, *args)

    def _build_minifier(self) -> TemplateMinifier:
        options = resolve_options(
            include=self.config.get("include", DEFAULT_INCLUDE),
            exclude=self.config.get("exclude") or [],
            html_options=self.config.get("html_options") or {},
            css_options=self.config.get("css_options") or {},
        )
        return TemplateMinifier(options, debug=self._debug_enabled())

    @property
    def minifier(self) -> TemplateMinifier:
        """The session's minifier; resolved once, on first use or in on_config."""
        if self._minifier is None:
            self._minifier = self._build_minifier()
        return self._minifier

    def transform(self, code: str, file_id: str) -> Optional[TransformResult]:
        """Build-pipeline hook: the rewritten code and its map, or None for "unchanged".

        Files outside the include/exclude selection are always unchanged.
        """
        if not self.minifier.options.is_eligible(file_id):
            self._dbg("[transform] %s not selected by include/exclude", file_id)
            return None
        return self.minifier.transform(code, file_id)

    def _write_source_map(self, path: Path, code: str, result: TransformResult) -> str:
        """Write `<file>.map` and link it from the code, unless the file already has a map."""
        if SOURCE_MAP_COMMENT in code:
            self._dbg("[sourcemap] %s already references a source map; not replacing it", path.name)
            return result.code

        map_path = path.with_name(path.name + ".map")
        source_map = dict(result.map, file=path.name, sources=[path.name])
        map_path.write_text(json.dumps(source_map), encoding="utf8")
        self._dbg("[sourcemap] wrote %s", map_path.name)
        return f"{result.code.rstrip()}\n{SOURCE_MAP_COMMENT}{map_path.name}\n"

    # -------------------------------
    # MkDocs hooks
    # -------------------------------

    def on_config(self, config: MkDocsConfig) -> Optional[MkDocsConfig]:
        """Resolve options once for the whole build."""
        self._minifier = self._build_minifier()
        self._dbg("[config] include=%s exclude=%s", self._minifier.options.include, self._minifier.options.exclude)
        return config

    # Run ahead of default-priority plugins so they see the minified templates.
    @event_priority(100)
    def on_post_build(self, *, config: MkDocsConfig) -> None:
        """After build: rewrite eligible assets in site_dir in place."""
        site_dir = Path(config["site_dir"])
        minifier = self.minifier
        scanned = rewritten = saved = 0

        for path in sorted(site_dir.rglob("*")):
            if not path.is_file():
                continue
            rel_path = path.relative_to(site_dir).as_posix()
            if not minifier.options.is_eligible(rel_path):
                continue

            scanned += 1
            try:
                code = path.read_text(encoding="utf8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("[minify_lit_templates] cannot read %s: %s", rel_path, e)
                continue

            try:
                result = self.transform(code, rel_path)
            except Exception as e:
                logger.error("[minify_lit_templates] failed to transform %s: %s", rel_path, e)
                continue

            if result is None:
                continue

            new_code = result.code
            if self.config.get("sourcemap", False):
                new_code = self._write_source_map(path, code, result)

            path.write_text(new_code, encoding="utf8")
            rewritten += 1
            saved += result.stats.get("chars_saved", 0)
            self._dbg("[post_build] rewrote %s", rel_path)

        logger.info(
            "[minify_lit_templates] scanned %d files, rewrote %d, saved %d characters",
            scanned,
            rewritten,
            saved,
        )
