"""
Substitution of placeholders with values.

Plain values are spliced into the part text directly. Values that carry a
native table (<w:tbl>...) cannot live inside a run, so the paragraph holding
the placeholder is swapped for the table through an lxml tree instead.
"""
import enum
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

from lxml import etree

from docx_template_processor.core.macros import ensure_macro
from docx_template_processor.core.parts import DocumentParts
from docx_template_processor.utils.xml_utils import (
    find_enclosing_paragraphs,
    parse_fragment,
    parse_part,
    replace_element,
    serialize_part,
)

logger = logging.getLogger(__name__)

LINE_BREAK_XML = "</w:t><w:br/><w:t>"

_TABLE_FRAGMENT = re.compile(r"^\s*<w:tbl[\s>]")
_BARE_AMPERSAND = re.compile(r"&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#x[0-9A-Fa-f]+);)")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")

SearchTerms = Union[str, Sequence[str]]
Replacements = Union[Any, Sequence[Any]]
ParagraphBuilder = Callable[[etree._Element, Dict[Optional[str], str]], List[etree._Element]]


class Outcome(enum.Enum):
    REPLACED = "replaced"
    NO_MATCH = "no_match"
    PARSE_FAILED = "parse_failed"


@dataclass(frozen=True)
class PartResult:
    """Result of one substitution pass over one part."""
    content: str
    count: int = 0
    outcome: Outcome = Outcome.NO_MATCH


def is_table_fragment(value: str) -> bool:
    return bool(_TABLE_FRAGMENT.match(value))


def escape_value(value: Any, output_escaping: bool = False) -> str:
    """
    Prepare a replacement value for insertion inside a w:t element.

    Args:
        value: Replacement value; non-strings are converted with str()
        output_escaping: Escape all XML special characters. When off only bare
            ampersands are encoded, so callers may pass run markup through.

    Returns:
        The value with line breaks turned into w:br elements
    """
    text = "" if value is None else str(value)
    if is_table_fragment(text):
        return text
    if output_escaping:
        text = escape(text)
    else:
        text = _BARE_AMPERSAND.sub("&amp;", text)
    return _LINE_BREAKS.sub(LINE_BREAK_XML, text)


def pair_values(search: SearchTerms, replace: Replacements) -> List[Tuple[str, Any]]:
    """
    Pair search terms with replacement values.

    Raises:
        ValueError: if list lengths differ, or a list of replacements is
            given for a single search term
    """
    if isinstance(search, (list, tuple)):
        if isinstance(replace, (list, tuple)):
            if len(search) != len(replace):
                raise ValueError(
                    f"Got {len(search)} search terms but {len(replace)} replacement values"
                )
            return list(zip(search, replace))
        return [(term, replace) for term in search]
    if isinstance(replace, (list, tuple)):
        raise ValueError("A list of replacement values needs a list of search terms")
    return [(search, replace)]


def replace_paragraphs(part_xml: str, search: str, build: ParagraphBuilder, limit: int = -1) -> PartResult:
    """
    Replace every paragraph whose text contains `search` with built elements.

    Args:
        part_xml: Text of the part
        search: Placeholder token to look for
        build: Called with the paragraph being replaced and the part's
            namespace map; returns the replacement elements. An empty list
            leaves that paragraph in place.
        limit: Maximum number of paragraphs to replace, negative for all

    Returns:
        PartResult; the content is unchanged unless the outcome is REPLACED
    """
    try:
        root = parse_part(part_xml)
    except etree.XMLSyntaxError as e:
        logger.warning("Part is not well-formed XML, left unchanged: %s", e)
        return PartResult(part_xml, 0, Outcome.PARSE_FAILED)

    paragraphs = find_enclosing_paragraphs(root, search)
    if limit >= 0:
        paragraphs = paragraphs[:limit]

    count = 0
    for paragraph in paragraphs:
        try:
            replacement = build(paragraph, root.nsmap)
        except etree.XMLSyntaxError as e:
            logger.warning("Replacement for %s is not well-formed XML, part left unchanged: %s", search, e)
            return PartResult(part_xml, 0, Outcome.PARSE_FAILED)
        if not replacement:
            continue
        replace_element(paragraph, replacement)
        count += 1

    if not count:
        return PartResult(part_xml)
    return PartResult(serialize_part(root, part_xml), count, Outcome.REPLACED)


def set_value_for_part(part_xml: str, search: str, replace: str, limit: int = -1) -> PartResult:
    """
    Replace up to `limit` occurrences of `search` in one part (negative: all).

    A table value replaces whole paragraphs, so there the limit counts
    paragraphs: a paragraph holding the token twice uses up one.
    """
    if limit == 0:
        return PartResult(part_xml)

    if is_table_fragment(replace):
        result = replace_paragraphs(
            part_xml, search, lambda paragraph, nsmap: parse_fragment(replace, nsmap), limit
        )
        if result.outcome is not Outcome.NO_MATCH:
            return result

    if limit < 0:
        count = part_xml.count(search)
        if not count:
            return PartResult(part_xml)
        return PartResult(part_xml.replace(search, replace), count, Outcome.REPLACED)

    content, count = re.subn(re.escape(search), lambda match: replace, part_xml, count=limit)
    return PartResult(content, count, Outcome.REPLACED if count else Outcome.NO_MATCH)


def set_value(parts: DocumentParts, search: SearchTerms, replace: Replacements,
              limit: int = -1, output_escaping: bool = False) -> int:
    """
    Replace placeholders in every part of the document.

    Args:
        parts: The document's parts; updated in place
        search: Placeholder name or token, or a list of them
        replace: Replacement value, or a list paired positionally with search
        limit: Per-part cap on replacements, negative for unlimited
        output_escaping: Escape replacement values as XML text

    Returns:
        Total number of replacements made
    """
    total = 0
    for term, value in pair_values(search, replace):
        token = ensure_macro(str(term))
        escaped = escape_value(value, output_escaping)
        for part in parts:
            result = set_value_for_part(part.content, token, escaped, limit)
            part.content = result.content
            if result.count:
                logger.debug("Replaced %s %d time(s) in %s", token, result.count, part.name)
            total += result.count
    return total
