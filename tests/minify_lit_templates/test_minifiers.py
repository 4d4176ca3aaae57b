"""
Tests for the HTML and CSS minifier adapters.
"""

import pytest

from plugins.minify_lit_templates import minifiers
from plugins.minify_lit_templates.minifiers import (
    CSS_DEFAULTS,
    HTML_DEFAULTS,
    MinifyOutcome,
    case_sensitive_bindings,
    css_structure_warnings,
    is_blocking,
    minify,
)
from plugins.minify_lit_templates.tags import TemplateKind


class TestHtmlAdapter:
    """htmlmin behind the adapter interface."""

    def test_placeholder_survives(self):
        """Test: a token in text content comes back unchanged."""
        outcome = minify(TemplateKind.HTML, "<div>__LIT_EXPRESSION_0__</div>", HTML_DEFAULTS)
        assert outcome.errors == ()
        assert outcome.code == "<div>__LIT_EXPRESSION_0__</div>"

    def test_comments_and_whitespace(self):
        """Test: comments are dropped and whitespace runs collapse."""
        text = "<p>Hello     World</p><!-- note -->"
        outcome = minify(TemplateKind.HTML, text, HTML_DEFAULTS)
        assert outcome.errors == ()
        assert "<p>Hello World</p>" in outcome.code
        assert "note" not in outcome.code

    def test_whitespace_between_inline_elements_kept(self):
        """Test: a newline between inline elements collapses to a space, never to nothing."""
        outcome = minify(TemplateKind.HTML, "<b>a</b>\n<i>b</i>", HTML_DEFAULTS)
        assert outcome.errors == ()
        assert "</b><i>" not in outcome.code
        assert outcome.code.replace("\n", " ") == "<b>a</b> <i>b</i>"

    def test_quoted_attribute_placeholder(self):
        """Test: attribute quotes around a token are kept."""
        outcome = minify(TemplateKind.HTML, '<p class="__LIT_EXPRESSION_0__">x</p>', HTML_DEFAULTS)
        assert 'class="__LIT_EXPRESSION_0__"' in outcome.code

    @pytest.mark.parametrize(
        "text, names",
        [
            ('<input .someValue="__LIT_EXPRESSION_0__">', [".someValue"]),
            ("<button @myEvent=__LIT_EXPRESSION_0__></button>", ["@myEvent"]),
            ('<x-el dataSet="__LIT_EXPRESSION_0__"></x-el>', ["dataSet"]),
            ('<svg viewBox="0 0 10 10"></svg>', []),
            ('<input .value="__LIT_EXPRESSION_0__">', []),
        ],
    )
    def test_case_sensitive_bindings(self, text, names):
        """Test: only bound attribute names with upper-case letters are flagged."""
        assert case_sensitive_bindings(text) == names

    def test_case_sensitive_binding_is_error(self):
        """Test: a binding whose case htmlmin would fold is reported as an error."""
        outcome = minify(TemplateKind.HTML, '<input .someValue="__LIT_EXPRESSION_0__">', HTML_DEFAULTS)
        assert outcome.errors
        assert is_blocking(TemplateKind.HTML, outcome)

    def test_minifier_exception_is_error(self, monkeypatch):
        """Test: an exception from htmlmin becomes an error, not a crash."""

        def _broken(text, **options):
            raise RuntimeError("parser gave up")

        monkeypatch.setattr(minifiers.htmlmin, "minify", _broken)
        outcome = minify(TemplateKind.HTML, "<p>x</p>", HTML_DEFAULTS)
        assert outcome.errors == ("htmlmin: RuntimeError: parser gave up",)
        assert outcome.code == "<p>x</p>"


class TestCssAdapter:
    """csscompressor behind the adapter interface."""

    def test_basic_rule(self):
        """Test: body { color : red; } minifies to body{color:red}."""
        outcome = minify(TemplateKind.CSS, "body { color : red; }", CSS_DEFAULTS)
        assert outcome.warnings == ()
        assert outcome.code == "body{color:red}"

    def test_placeholder_survives(self):
        """Test: a token used as a value is kept verbatim."""
        outcome = minify(TemplateKind.CSS, ":host {\n  color: __LIT_EXPRESSION_0__;\n}\n", CSS_DEFAULTS)
        assert "color:__LIT_EXPRESSION_0__" in outcome.code

    @pytest.mark.parametrize(
        "text",
        [
            "a { color: red;",
            "a { color: red; }}",
            "a { background: url(x.png; }",
            "a { content: 'oops; }",
            "a { color: red; } /* open",
        ],
    )
    def test_structure_warnings(self, text):
        """Test: malformed CSS is reported as warnings."""
        assert css_structure_warnings(text)
        outcome = minify(TemplateKind.CSS, text, CSS_DEFAULTS)
        assert outcome.warnings
        assert outcome.code == text

    def test_well_formed_has_no_warnings(self):
        """Test: strings, comments and escapes do not confuse the scan."""
        text = "a::before { content: '}' ; } /* { */ b[data-x=\"(\"] { x: \\{; }"
        assert css_structure_warnings(text) == []


class TestBlockingPolicy:
    """Errors block HTML; warnings additionally block CSS."""

    def test_html_warning_does_not_block(self):
        assert not is_blocking(TemplateKind.HTML, MinifyOutcome("x", warnings=("w",)))

    def test_css_warning_blocks(self):
        assert is_blocking(TemplateKind.CSS, MinifyOutcome("x", warnings=("w",)))

    def test_errors_block(self):
        assert is_blocking(TemplateKind.HTML, MinifyOutcome("x", errors=("e",)))
        assert is_blocking(TemplateKind.CSS, MinifyOutcome("x", errors=("e",)))

    def test_clean_outcome(self):
        assert not is_blocking(TemplateKind.CSS, MinifyOutcome("x"))
