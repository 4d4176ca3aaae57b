"""
Classify tagged template literals by the markup they carry.
"""

from enum import Enum
from typing import Dict, Optional

from tree_sitter import Node

# Namespace object that exposes the tags as members, e.g. `lit.html`.
NAMESPACE = "lit"


class TemplateKind(Enum):
    """Markup flavor of a tagged template; selects the minifier."""

    HTML = "html"
    CSS = "css"


class TagAlias(Enum):
    """Every tag name recognized as markup-bearing."""

    HTML = "html"
    STATIC_HTML = "staticHtml"
    UNSAFE_HTML = "unsafeHTML"
    CSS = "css"
    UNSAFE_CSS = "unsafeCSS"

    @property
    def kind(self) -> TemplateKind:
        return ALIAS_KINDS[self]


ALIAS_KINDS: Dict[TagAlias, TemplateKind] = {
    TagAlias.HTML: TemplateKind.HTML,
    TagAlias.STATIC_HTML: TemplateKind.HTML,
    TagAlias.UNSAFE_HTML: TemplateKind.HTML,
    TagAlias.CSS: TemplateKind.CSS,
    TagAlias.UNSAFE_CSS: TemplateKind.CSS,
}

assert set(ALIAS_KINDS) == set(TagAlias), "every alias needs a kind"


def alias_for(name: str) -> Optional[TagAlias]:
    """Return the alias spelled `name`, or None when the name is not a markup tag."""
    try:
        return TagAlias(name)
    except ValueError:
        return None


def tag_name(tag: Optional[Node]) -> Optional[str]:
    """Return the alias name a tag expression refers to.

    Two shapes qualify: a bare identifier (`html`) and a non-optional member
    access on the namespace identifier (`lit.html`). Everything else, including
    computed members and call results, yields None.
    """
    if tag is None:
        return None

    if tag.type == "identifier":
        return tag.text.decode("utf8")

    if tag.type != "member_expression":
        return None

    base = tag.child_by_field_name("object")
    prop = tag.child_by_field_name("property")
    if base is None or prop is None:
        return None
    if base.type != "identifier" or prop.type != "property_identifier":
        return None
    if any(child.type == "optional_chain" for child in tag.children):
        return None
    if base.text.decode("utf8") != NAMESPACE:
        return None
    return prop.text.decode("utf8")


def classify_tag(tag: Optional[Node]) -> Optional[TemplateKind]:
    """Map a tag expression node to its TemplateKind, or None when not applicable."""
    name = tag_name(tag)
    if name is None:
        return None
    alias = alias_for(name)
    return alias.kind if alias is not None else None
