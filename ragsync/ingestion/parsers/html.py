from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction, Tag

NOISE_TAGS = ["script", "style", "noscript", "template"]

BLOCK_TAGS = {
    "address",
    "article",
    "aside",
    "blockquote",
    "div",
    "dl",
    "dt",
    "dd",
    "fieldset",
    "figcaption",
    "figure",
    "footer",
    "form",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "li",
    "main",
    "nav",
    "ol",
    "p",
    "pre",
    "section",
    "table",
    "td",
    "th",
    "title",
    "ul",
}


_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def _block_ancestor(element) -> Tag | None:
    for parent in element.parents:
        if parent.name and parent.name.lower() in BLOCK_TAGS:
            return parent
    return None


def extract_html_text(html: str) -> str:
    """Strip markup, scripts and styles from ``html`` and return readable text.

    Entities are decoded by the parser. Each block-level element starts a new
    line; inline fragments stay on the line of their enclosing block.
    """

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NOISE_TAGS):
        tag.decompose()

    lines: list[str] = []
    current_block: Tag | None = None
    for element in soup.find_all(string=True):
        if isinstance(element, _SKIPPED_STRINGS):
            continue
        text = " ".join(element.split())
        if not text:
            continue
        block = _block_ancestor(element)
        if lines and (block is None or block is current_block):
            lines[-1] = f"{lines[-1]} {text}"
        else:
            lines.append(text)
        if block is not None:
            current_block = block
    return "\n".join(lines)
