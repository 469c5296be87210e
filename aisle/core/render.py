# aisle/core/render.py
from __future__ import annotations

import markdown
import nh3


# Tags a rendered recipe can legitimately use. Anything script-capable
# (script, style, iframe, event-handler attributes, javascript: URLs) is
# removed by nh3.
ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "em", "h1", "h2", "h3", "h4", "h5", "h6",
    "hr", "i", "li", "ol", "p", "pre", "strong", "table", "tbody", "td", "th",
    "thead", "tr", "ul",
}
ALLOWED_ATTRIBUTES = {
    "a": {"href", "title"},
    "td": {"align"},
    "th": {"align"},
}


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=["tables", "fenced_code", "sane_lists"])


def sanitize_html(html: str) -> str:
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes={"http", "https", "mailto"},
    )


def render_recipe(text: str) -> str:
    """Model output (untrusted markdown) -> display-safe HTML fragment."""
    return sanitize_html(markdown_to_html(text))
