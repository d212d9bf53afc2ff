"""
Table row cloning.

Works on the flat text of the main part: the row around a placeholder is cut
out by offsets and written back N times with suffixed placeholders. When the
row opens a vertically merged cell, the rows continuing the merge are cloned
along with it so each copy keeps the whole merged shape.
"""
import logging
import re
from typing import Optional, Tuple

from docx_template_processor.core.macros import ensure_macro, suffix_macros
from docx_template_processor.core.parts import DocumentParts
from docx_template_processor.exceptions import MacroNotFoundError, TemplateError

logger = logging.getLogger(__name__)

ROW_END_TAG = "</w:tr>"
TABLE_END_TAG = "</w:tbl>"

_ROW_START = re.compile(r"<w:tr[\s>]")
_MERGE_RESTART = re.compile(r'<w:vMerge\s+w:val="restart"\s*/>')
_MERGE_CONTINUE = re.compile(r'<w:vMerge\s*/>|<w:vMerge\s+w:val="continue"\s*/>')


def find_row_start(xml: str, offset: int) -> int:
    """
    Find where the nearest row before `offset` opens.

    Raises:
        TemplateError: if no row opens before offset
    """
    start = max(xml.rfind("<w:tr ", 0, offset), xml.rfind("<w:tr>", 0, offset))
    if start < 0:
        raise TemplateError("Can not find the start position of the row to clone.")
    return start


def find_row_end(xml: str, offset: int) -> int:
    """Offset just past the next row end after `offset`, or -1 if there is none."""
    end = xml.find(ROW_END_TAG, offset)
    if end < 0:
        return -1
    return end + len(ROW_END_TAG)


def _next_row(xml: str, offset: int) -> Optional[Tuple[int, int]]:
    """The row that follows `offset` in the same table, if any."""
    match = _ROW_START.search(xml, offset)
    if match is None:
        return None
    table_end = xml.find(TABLE_END_TAG, offset)
    if 0 <= table_end < match.start():
        return None
    end = find_row_end(xml, match.start())
    if end < 0:
        return None
    return match.start(), end


def find_row_region(xml: str, offset: int) -> Tuple[int, int]:
    """
    Find the [start, end) span of the row around `offset`, extended over the
    rows continuing a vertical merge that the row starts.
    """
    start = find_row_start(xml, offset)
    if ROW_END_TAG in xml[start:offset] or TABLE_END_TAG in xml[start:offset]:
        raise TemplateError("Can not clone row, template variable is not inside a table row.")
    end = find_row_end(xml, offset)
    if end < 0:
        raise TemplateError("Can not find the end position of the row to clone.")

    if _MERGE_RESTART.search(xml, start, end):
        while True:
            row = _next_row(xml, end)
            if row is None:
                break
            row_start, row_end = row
            if not _MERGE_CONTINUE.search(xml, row_start, row_end):
                break
            end = row_end
    return start, end


def clone_row(parts: DocumentParts, search: str, number_of_clones: int) -> None:
    """
    Clone the table row holding a placeholder in the main part.

    Args:
        parts: The document's parts; the main part is updated in place
        search: Placeholder name or token inside the row
        number_of_clones: Number of copies to leave; 0 removes the row

    Raises:
        MacroNotFoundError: if the placeholder is not in the main part
        TemplateError: if the placeholder is not inside a table row
    """
    if number_of_clones < 0:
        raise ValueError("number_of_clones must not be negative")

    search = ensure_macro(search)
    xml = parts.main.content
    tag_pos = xml.find(search)
    if tag_pos < 0:
        raise MacroNotFoundError(
            "Can not clone row, template variable not found or variable contains markup."
        )

    row_start, row_end = find_row_region(xml, tag_pos)
    row_xml = xml[row_start:row_end]
    clones = "".join(suffix_macros(row_xml, i) for i in range(1, number_of_clones + 1))
    parts.main.content = xml[:row_start] + clones + xml[row_end:]
    logger.debug("Cloned row of %s %d time(s)", search, number_of_clones)
