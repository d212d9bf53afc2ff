"""
XML helpers shared by the structural operations.

Parts are kept as text; these helpers parse a part into an lxml tree, move
fragments in and out of it, and serialize it back without losing the
original XML declaration.
"""
import copy
import re
from typing import Dict, Iterable, List, Optional

from lxml import etree

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
CT_NS = "http://schemas.openxmlformats.org/package/2006/content-types"

W_P = f"{{{W_NS}}}p"
W_T = f"{{{W_NS}}}t"
W_PPR = f"{{{W_NS}}}pPr"
W_SECTPR = f"{{{W_NS}}}sectPr"

EMPTY_RELATIONSHIPS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    f'<Relationships xmlns="{REL_NS}"></Relationships>'
)

_FRAGMENT_TAG = "fragment"
_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>\s*")


def _parser() -> etree.XMLParser:
    return etree.XMLParser(remove_blank_text=False, resolve_entities=False, huge_tree=True)


def parse_part(xml: str) -> etree._Element:
    """Parse the text of a package part. Raises etree.XMLSyntaxError."""
    return etree.fromstring(_DECLARATION.sub("", xml, count=1).encode("utf-8"), _parser())


def serialize_part(root: etree._Element, original: str) -> str:
    """Serialize a part tree, reusing the declaration of the original text."""
    declaration = _DECLARATION.match(original)
    body = etree.tostring(root, encoding="unicode")
    if declaration:
        return declaration.group(0) + body
    return body


def _namespace_declarations(nsmap: Dict[Optional[str], str]) -> str:
    namespaces = {"w": W_NS}
    namespaces.update(nsmap)
    decls = []
    for prefix, uri in namespaces.items():
        if prefix:
            decls.append(f'xmlns:{prefix}="{uri}"')
        else:
            decls.append(f'xmlns="{uri}"')
    return " ".join(decls)


def parse_fragment(xml: str, nsmap: Dict[Optional[str], str]) -> List[etree._Element]:
    """
    Parse a markup fragment that relies on the namespace prefixes of a part.

    Args:
        xml: Zero or more sibling elements, e.g. '<w:p>...</w:p><w:p/>'
        nsmap: Namespace map of the part the fragment is meant for

    Returns:
        The top-level elements of the fragment, detached from any part

    Raises:
        etree.XMLSyntaxError: if the fragment is not well-formed
    """
    wrapped = f"<{_FRAGMENT_TAG} {_namespace_declarations(nsmap)}>{xml}</{_FRAGMENT_TAG}>"
    wrapper = etree.fromstring(wrapped.encode("utf-8"), _parser())
    return list(wrapper)


def serialize_children(elements: Iterable[etree._Element], nsmap: Dict[Optional[str], str]) -> str:
    """Serialize sibling elements as a fragment that parse_fragment can read back."""
    wrapper = etree.fromstring(
        f"<{_FRAGMENT_TAG} {_namespace_declarations(nsmap)}/>".encode("utf-8"), _parser()
    )
    for element in elements:
        wrapper.append(copy.deepcopy(element))
    if len(wrapper) == 0:
        return ""
    text = etree.tostring(wrapper, encoding="unicode")
    return text[text.index(">") + 1:text.rindex("</")]


def replace_element(old: etree._Element, new_elements: List[etree._Element]) -> None:
    """Put new_elements where old was, keeping the text that followed old."""
    parent = old.getparent()
    index = parent.index(old)
    tail = old.tail
    parent.remove(old)
    for offset, element in enumerate(new_elements):
        parent.insert(index + offset, element)
    if not tail:
        return
    if new_elements:
        last = new_elements[-1]
        last.tail = (last.tail or "") + tail
    elif index > 0:
        previous = parent[index - 1]
        previous.tail = (previous.tail or "") + tail
    else:
        parent.text = (parent.text or "") + tail


def find_enclosing_paragraphs(root: etree._Element, search: str) -> List[etree._Element]:
    """
    Find the nearest w:p ancestor of every text node containing search.

    Paragraphs are returned once each, in document order. A paragraph nested
    inside an already collected one (text boxes) is skipped.
    """
    paragraphs = []
    for text_node in root.iter(W_T):
        if not text_node.text or search not in text_node.text:
            continue
        paragraph = next(text_node.iterancestors(W_P), None)
        if paragraph is None or paragraph in paragraphs:
            continue
        if any(outer in paragraphs for outer in paragraph.iterancestors(W_P)):
            continue
        paragraphs.append(paragraph)
    return paragraphs


def inherit_paragraph_properties(slot: etree._Element, paragraphs: Iterable[etree._Element]) -> None:
    """Give paragraphs without w:pPr a copy of the slot paragraph's w:pPr (minus w:sectPr)."""
    properties = slot.find(W_PPR)
    if properties is None:
        return
    for paragraph in paragraphs:
        if paragraph.tag != W_P or paragraph.find(W_PPR) is not None:
            continue
        inherited = copy.deepcopy(properties)
        for section in inherited.findall(W_SECTPR):
            inherited.remove(section)
        paragraph.insert(0, inherited)
