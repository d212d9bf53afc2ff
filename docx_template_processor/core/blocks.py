"""
Paragraph blocks delimited by ${name} ... ${/name}.

A block is everything between the paragraph holding ${name} and the
paragraph holding ${/name}. Blocks can be cloned (placeholders in copy i are
suffixed #i, as with cloned rows), replaced with caller XML, or deleted. The
delimiters never survive an applied operation. A block that opens and closes
in one paragraph is cloned inside that paragraph.
"""
import logging
from typing import List, Optional, Tuple

from lxml import etree

from docx_template_processor.core.macros import suffix_macros
from docx_template_processor.core.parts import DocumentParts
from docx_template_processor.exceptions import TemplateError, TemplateXMLError
from docx_template_processor.utils.xml_utils import (
    W_P,
    W_T,
    parse_fragment,
    parse_part,
    replace_element,
    serialize_children,
    serialize_part,
)

logger = logging.getLogger(__name__)

BlockRegion = Tuple[etree._Element, etree._Element, List[etree._Element]]


def _parse_main(parts: DocumentParts) -> etree._Element:
    try:
        return parse_part(parts.main.content)
    except etree.XMLSyntaxError as e:
        raise TemplateXMLError(f"Main document part is not well-formed XML: {e}") from e


def _delimiters(name: str) -> Tuple[str, str]:
    return f"${{{name}}}", f"${{/{name}}}"


def _split_inline_block(paragraph: etree._Element, name: str, nsmap) -> Tuple[str, str, str]:
    """
    Cut a block that opens and closes in one paragraph into the paragraph XML
    before the opening token, the body between the tokens and the XML after
    the closing token. The body starts and ends inside text, so copies of it
    can be concatenated between the other two pieces.
    """
    xml = serialize_children([paragraph], nsmap)
    open_token, close_token = _delimiters(name)
    opening = xml.index(open_token)
    body_start = opening + len(open_token)
    body_end = xml.index(close_token, body_start)
    return xml[:opening], xml[body_start:body_end], xml[body_end + len(close_token):]


def find_block(root: etree._Element, name: str) -> Optional[BlockRegion]:
    """
    Locate the delimiter paragraphs of a block and the nodes between them.

    Returns:
        (opening paragraph, closing paragraph, body nodes), or None when
        either delimiter is missing

    Raises:
        TemplateError: if the delimiters sit in different containers
    """
    open_token, close_token = _delimiters(name)

    opening = closing = None
    for text_node in root.iter(W_T):
        text = text_node.text or ""
        if opening is None:
            if open_token in text:
                opening = text_node
                if close_token in text.split(open_token, 1)[1]:
                    closing = text_node
                    break
            continue
        if close_token in text:
            closing = text_node
            break
    if opening is None or closing is None:
        return None

    start = next(opening.iterancestors(W_P), None)
    end = next(closing.iterancestors(W_P), None)
    if start is None or end is None:
        return None
    if start is end:
        return start, end, []
    if start.getparent() is not end.getparent():
        raise TemplateError(f"Block {name} opens and closes in different containers")

    body = []
    for sibling in start.itersiblings():
        if sibling is end:
            break
        body.append(sibling)
    return start, end, body


def _replace_region(region: BlockRegion, replacement: List[etree._Element]) -> None:
    start, end, body = region
    if end is not start:
        for node in body + [end]:
            node.getparent().remove(node)
    replace_element(start, replacement)


def clone_block(parts: DocumentParts, name: str, clones: int = 1, apply: bool = True) -> Optional[str]:
    """
    Clone the body of a block in the main part.

    Args:
        parts: The document's parts; the main part is updated in place
        name: Block name, without ${ }
        clones: Number of body copies to leave in place of the block
        apply: When False only extract the body, leaving the document as is

    Returns:
        The block body XML as found, or None if the block does not exist.
        When both delimiters share a paragraph the body is the markup between
        them and the copies stay inside that paragraph.
    """
    if clones < 0:
        raise ValueError("clones must not be negative")

    root = _parse_main(parts)
    region = find_block(root, name)
    if region is None:
        logger.debug("Block %s not found", name)
        return None

    start, end, body = region
    if start is end:
        before, body_xml, after = _split_inline_block(start, name, root.nsmap)
        if apply:
            copies = "".join(suffix_macros(body_xml, i) for i in range(1, clones + 1))
            replace_element(start, parse_fragment(before + copies + after, root.nsmap))
    else:
        body_xml = serialize_children(body, root.nsmap)
        if apply:
            copies = []
            for i in range(1, clones + 1):
                copies.extend(parse_fragment(suffix_macros(body_xml, i), root.nsmap))
            _replace_region(region, copies)

    if apply:
        parts.main.content = serialize_part(root, parts.main.content)
        logger.debug("Cloned block %s %d time(s)", name, clones)
    return body_xml


def replace_block(parts: DocumentParts, name: str, xml: str) -> bool:
    """
    Replace a block, delimiters included, with caller supplied XML.

    Returns:
        False if the block does not exist

    Raises:
        TemplateXMLError: if xml is not a well-formed fragment
    """
    root = _parse_main(parts)
    region = find_block(root, name)
    if region is None:
        logger.debug("Block %s not found", name)
        return False

    try:
        replacement = parse_fragment(xml, root.nsmap)
    except etree.XMLSyntaxError as e:
        raise TemplateXMLError(f"Replacement for block {name} is not well-formed XML: {e}") from e

    _replace_region(region, replacement)
    parts.main.content = serialize_part(root, parts.main.content)
    return True


def delete_block(parts: DocumentParts, name: str) -> bool:
    return replace_block(parts, name, "")
