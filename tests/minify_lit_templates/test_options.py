"""
Tests for option merging and file filtering.
"""

import datetime
import logging

import pytest

from plugins.minify_lit_templates.minifiers import CSS_DEFAULTS, HTML_DEFAULTS
from plugins.minify_lit_templates.options import (
    is_plain_object,
    merge_options,
    normalize_patterns,
    resolve_options,
)
from plugins.minify_lit_templates.tags import TemplateKind


class TestMergeOptions:
    """Recursive merge of user options over defaults."""

    def test_nested_dicts_merge(self):
        """Test: nested plain dicts merge key by key."""
        target = {"a": {"x": 1, "y": 2}, "b": 1}
        source = {"a": {"y": 3, "z": 4}}
        assert merge_options(target, source) == {"a": {"x": 1, "y": 3, "z": 4}, "b": 1}

    def test_lists_replace(self):
        """Test: arrays replace wholesale instead of merging element-wise."""
        assert merge_options({"tags": ["pre", "textarea"]}, {"tags": ["code"]}) == {"tags": ["code"]}

    def test_non_plain_values_replace(self):
        """Test: dates and scalars replace; a dict over a scalar replaces too."""
        when = datetime.date(2024, 1, 1)
        merged = merge_options({"when": {"day": 1}, "n": 1}, {"when": when, "n": {"k": 2}})
        assert merged == {"when": when, "n": {"k": 2}}

    def test_inputs_not_mutated(self):
        """Test: neither tree is modified and the result shares no nested dicts."""
        target = {"a": {"x": 1}}
        source = {"a": {"y": 2}, "b": {"c": [1]}}
        merged = merge_options(target, source)
        merged["a"]["x"] = 99
        merged["b"]["c"].append(2)
        assert target == {"a": {"x": 1}}
        assert source == {"a": {"y": 2}, "b": {"c": [1]}}

    @pytest.mark.parametrize(
        "value, expected",
        [({}, True), ({"a": 1}, True), ([], False), ((), False), (None, False), (datetime.date.today(), False)],
    )
    def test_is_plain_object(self, value, expected):
        assert is_plain_object(value) is expected


class TestResolveOptions:
    """Per-kind options and the include/exclude predicate."""

    def test_defaults(self):
        """Test: without user options the built-in defaults apply."""
        options = resolve_options()
        assert dict(options.minifier_options(TemplateKind.HTML)) == HTML_DEFAULTS
        assert dict(options.minifier_options(TemplateKind.CSS)) == CSS_DEFAULTS

    def test_user_options_override(self):
        """Test: user values win over defaults."""
        options = resolve_options(html_options={"remove_comments": False}, css_options={"max_linelen": 80})
        assert options.html["remove_comments"] is False
        assert options.html["keep_pre"] is False
        assert options.css["max_linelen"] == 80

    def test_unknown_option_dropped(self, caplog):
        """Test: unrecognized minifier options are warned about and dropped."""
        with caplog.at_level(logging.WARNING):
            options = resolve_options(html_options={"collapse_everything": True})
        assert "collapse_everything" not in options.html
        assert "collapse_everything" in caplog.text

    def test_options_are_read_only(self):
        """Test: resolved options cannot be changed afterwards."""
        options = resolve_options()
        with pytest.raises(TypeError):
            options.html["remove_comments"] = False
        with pytest.raises(AttributeError):
            options.include = ()

    def test_patterns_normalized(self):
        """Test: a single glob string is accepted like a list."""
        assert normalize_patterns("*.js") == ("*.js",)
        assert normalize_patterns(["*.js", "*.ts"]) == ("*.js", "*.ts")
        assert normalize_patterns(None) == ()

    @pytest.mark.parametrize(
        "file_id, eligible",
        [
            ("assets/app.js", True),
            ("./assets/app.ts", True),
            ("assets\\widgets\\card.tsx", True),
            ("assets/style.css", False),
            ("vendor/lib.js", False),
            ("assets/app.min.js", False),
        ],
    )
    def test_filter(self, file_id, eligible):
        """Test: a file must match an include glob and no exclude glob."""
        options = resolve_options(exclude=["vendor/*", "*.min.js"])
        assert options.is_eligible(file_id) is eligible

    def test_custom_include(self):
        options = resolve_options(include="components/*.js")
        assert options.is_eligible("components/button.js")
        assert not options.is_eligible("app.js")
