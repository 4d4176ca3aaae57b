"""Shared fixtures for the lit template minifier tests."""

import pytest

from plugins.minify_lit_templates.source import Dialect, parse
from plugins.minify_lit_templates.transform import TemplateMinifier


@pytest.fixture
def parse_js():
    """Return a helper that parses JS source into a ParsedSource."""

    def _parse(code: str, dialect: Dialect = Dialect.TSX):
        return parse(code, dialect)

    return _parse


@pytest.fixture
def tagged_templates(parse_js):
    """Return a helper listing (tag node, template node) pairs of every tagged template."""

    def _collect(code: str):
        parsed = parse_js(code)
        found = []
        for node in parsed.walk():
            if node.type != "call_expression":
                continue
            arguments = node.child_by_field_name("arguments")
            if arguments is not None and arguments.type == "template_string":
                found.append((node.child_by_field_name("function"), arguments))
        return parsed, found

    return _collect


@pytest.fixture
def minifier():
    return TemplateMinifier()
