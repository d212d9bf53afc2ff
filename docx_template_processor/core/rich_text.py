"""
HTML content for placeholders.

An HTML fragment is rendered into a throwaway python-docx document, one
python-docx paragraph per HTML block. The paragraphs are then spliced over
the paragraph holding the placeholder, taking over that paragraph's
attributes and properties so the slot keeps its list and style context.
"""
import logging
import re
from typing import Dict, List, Optional

import lxml.html
from docx import Document
from docx.oxml.ns import qn
from lxml import etree

from docx_template_processor.core.macros import ensure_macro
from docx_template_processor.core.parts import DocumentParts
from docx_template_processor.core.substitution import replace_paragraphs
from docx_template_processor.utils.xml_utils import (
    W14_NS,
    W_P,
    inherit_paragraph_properties,
    parse_fragment,
    serialize_children,
)

logger = logging.getLogger(__name__)

HEADING_STYLES = {f"h{level}": f"Heading {level}" for level in range(1, 7)}
LIST_STYLES = {"ul": "List Bullet", "ol": "List Number"}
BLOCK_TAGS = {"p", "li", "blockquote", "pre", "address"} | set(HEADING_STYLES)

INLINE_FORMATS = {
    "b": {"bold": True},
    "strong": {"bold": True},
    "i": {"italic": True},
    "em": {"italic": True},
    "u": {"underline": True},
    "ins": {"underline": True},
    "s": {"strike": True},
    "strike": {"strike": True},
    "del": {"strike": True},
    "sup": {"superscript": True},
    "sub": {"subscript": True},
}

# Attributes that must stay unique per paragraph
UNIQUE_PARAGRAPH_ATTRIBUTES = {f"{{{W14_NS}}}paraId", f"{{{W14_NS}}}textId"}

_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
_DIV = re.compile(r"<(/?)div\b", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_WHITESPACE = re.compile(r"\s+")


def normalize_html(html: str) -> str:
    """Rewrite constructs the document builder does not handle as-is."""
    html = _CONTROL_CHARS.sub("", html)
    html = _BREAK.sub("<br/>", html)
    html = _DIV.sub(r"<\1p", html)
    return html.replace("&nbsp;", "&#160;")


class _HtmlRenderer:
    """Walks parsed HTML and adds paragraphs and runs to a python-docx document."""

    def __init__(self, document):
        self.document = document
        self.paragraph = None

    def render(self, nodes) -> None:
        for node in nodes:
            if isinstance(node, str):
                self._text(node, {})
            else:
                self._node(node, {}, None)

    def _current_paragraph(self):
        if self.paragraph is None:
            self.paragraph = self.document.add_paragraph()
        return self.paragraph

    def _text(self, text: str, formats: Dict[str, bool]) -> None:
        text = _WHITESPACE.sub(" ", text)
        if not text.strip() and self.paragraph is None:
            return
        run = self._current_paragraph().add_run(text)
        if not formats:
            return
        run.bold = formats.get("bold")
        run.italic = formats.get("italic")
        run.underline = formats.get("underline")
        run.font.strike = formats.get("strike")
        run.font.superscript = formats.get("superscript")
        run.font.subscript = formats.get("subscript")

    def _children(self, element, formats: Dict[str, bool], list_style: Optional[str]) -> None:
        if element.text:
            self._text(element.text, formats)
        for child in element:
            self._node(child, formats, list_style)

    def _node(self, element, formats: Dict[str, bool], list_style: Optional[str]) -> None:
        tag = element.tag.lower() if isinstance(element.tag, str) else None

        if tag is None:
            # comments and processing instructions
            pass
        elif tag == "br":
            self._current_paragraph().add_run().add_break()
        elif tag in LIST_STYLES:
            self.paragraph = None
            for item in element:
                self._node(item, formats, LIST_STYLES[tag])
            self.paragraph = None
        elif tag in BLOCK_TAGS:
            style = HEADING_STYLES.get(tag) or (list_style if tag == "li" else None)
            self.paragraph = self.document.add_paragraph(style=style)
            self._children(element, formats, list_style)
            self.paragraph = None
        else:
            inner = dict(formats)
            inner.update(INLINE_FORMATS.get(tag, {}))
            self._children(element, inner, list_style)

        if element.tail:
            self._text(element.tail, formats)


def html_to_paragraphs(html: str) -> List[str]:
    """
    Render an HTML fragment as WordprocessingML paragraphs.

    Returns:
        One XML string per paragraph, readable with parse_fragment
    """
    document = Document()
    body = document.element.body
    for child in list(body):
        if child.tag != qn("w:sectPr"):
            body.remove(child)

    nodes = lxml.html.fragments_fromstring(normalize_html(html)) if html.strip() else []
    _HtmlRenderer(document).render(nodes)

    return [
        serialize_children([child], body.nsmap)
        for child in body
        if child.tag != qn("w:sectPr")
    ]


def _adopt_slot(slot: etree._Element, paragraphs: List[etree._Element]) -> None:
    for paragraph in paragraphs:
        if paragraph.tag != W_P:
            continue
        for key, value in slot.attrib.items():
            if key not in UNIQUE_PARAGRAPH_ATTRIBUTES:
                paragraph.set(key, value)
    inherit_paragraph_properties(slot, paragraphs)


def set_html(parts: DocumentParts, search: str, html: str, limit: int = -1) -> int:
    """
    Replace paragraphs holding a placeholder with paragraphs rendered from HTML.

    Args:
        parts: The document's parts; updated in place
        search: Placeholder name or token
        html: HTML fragment
        limit: Maximum number of paragraphs replaced across all parts,
            negative for unlimited

    Returns:
        Number of placeholders replaced
    """
    search = ensure_macro(search)
    fragments = html_to_paragraphs(html)

    def build(slot: etree._Element, nsmap) -> List[etree._Element]:
        elements = []
        for fragment in fragments:
            try:
                elements.extend(parse_fragment(fragment, nsmap))
            except etree.XMLSyntaxError as e:
                logger.warning("Skipping HTML fragment for %s that is not well-formed XML: %s", search, e)
        _adopt_slot(slot, elements)
        return elements

    total = 0
    remaining = limit
    for part in parts:
        if remaining == 0:
            break
        result = replace_paragraphs(part.content, search, build, remaining)
        part.content = result.content
        if result.count:
            logger.debug("Replaced %s with HTML %d time(s) in %s", search, result.count, part.name)
        total += result.count
        if remaining > 0:
            remaining -= result.count
    return total
