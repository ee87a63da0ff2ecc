"""Rendering helpers for the study guide result view."""

from urllib.parse import urlparse

import markdown as md
from markdown.treeprocessors import Treeprocessor

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists", "nl2br"]

SAFE_URL_SCHEMES = {"", "http", "https", "mailto"}


class UnsafeURLStripper(Treeprocessor):
    """Remove href/src attributes whose scheme is not in SAFE_URL_SCHEMES."""

    def run(self, root):
        for element in root.iter():
            for attr in ("href", "src"):
                value = element.get(attr)
                if value is None:
                    continue
                if urlparse(value.strip()).scheme.lower() not in SAFE_URL_SCHEMES:
                    del element.attrib[attr]


def render_markdown(text: str) -> str:
    """Convert a Markdown study guide to HTML.

    Line breaks are kept so a Dutch line and its Chinese translation inside one
    blockquote stay on separate lines. Raw HTML in the source is escaped and
    shown as text, and ``javascript:``-style links lose their target.

    Args:
        text: Markdown returned by the model.

    Returns:
        HTML fragment.
    """
    converter = md.Markdown(extensions=MARKDOWN_EXTENSIONS)
    converter.preprocessors.deregister("html_block")
    converter.inlinePatterns.deregister("html")
    converter.treeprocessors.register(UnsafeURLStripper(converter), "unsafe_urls", 0)
    return converter.convert(text)


def source_label(url: str) -> str:
    """Short label for a source link (the host name, or the URL itself)."""
    host = urlparse(url).netloc
    return host or url


def source_links(sources: list[str]) -> list[dict[str, str]]:
    """Build link entries for the sources list.

    Args:
        sources: Source URLs in display order.

    Returns:
        List of dicts with url and label. Empty for no sources.
    """
    return [{"url": url, "label": source_label(url)} for url in sources]
