"""
Image embedding for placeholders.

The paragraph holding the placeholder becomes a paragraph with one inline
picture. python-docx reads the image header and renders the drawing markup;
this module does the package bookkeeping around it: the relationship entry,
the media file and the content type of its extension.
"""
import logging
import os
import re
from typing import Any, Dict, List, Optional

from docx.image.image import Image
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.shape import CT_Inline
from lxml import etree

from docx_template_processor.core.macros import ensure_macro
from docx_template_processor.core.parts import DocumentParts, RelationshipPart
from docx_template_processor.core.substitution import Outcome, replace_paragraphs
from docx_template_processor.exceptions import TemplateXMLError
from docx_template_processor.utils.xml_utils import (
    REL_NS,
    WP_NS,
    inherit_paragraph_properties,
    parse_fragment,
    parse_part,
    serialize_part,
)

logger = logging.getLogger(__name__)

_REL_ID = re.compile(r"^rId(\d+)$")


def next_relationship_id(rels_root: etree._Element) -> int:
    """One past the highest numeric rIdN in the manifest (at least count + 1)."""
    relationships = list(rels_root.iter(f"{{{REL_NS}}}Relationship"))
    ids = [len(relationships)]
    for relationship in relationships:
        match = _REL_ID.match(relationship.get("Id", ""))
        if match:
            ids.append(int(match.group(1)))
    return max(ids) + 1


def add_image_relationship(rels: RelationshipPart, target: str) -> str:
    """
    Append an image relationship to a manifest.

    Returns:
        The new relationship id, e.g. 'rId3'

    Raises:
        TemplateXMLError: if the manifest is not well-formed
    """
    try:
        root = parse_part(rels.content)
    except etree.XMLSyntaxError as e:
        raise TemplateXMLError(f"Malformed relationship manifest {rels.name}: {e}") from e

    rel_id = f"rId{next_relationship_id(root)}"
    relationship = etree.SubElement(root, f"{{{REL_NS}}}Relationship")
    relationship.set("Id", rel_id)
    relationship.set("Target", target)
    relationship.set("Type", RT.IMAGE)
    rels.content = serialize_part(root, rels.content)
    return rel_id


def next_shape_id(root: etree._Element) -> int:
    ids = [0]
    for doc_pr in root.iter(f"{{{WP_NS}}}docPr"):
        value = doc_pr.get("id", "")
        if value.isdigit():
            ids.append(int(value))
    return max(ids) + 1


def render_picture_paragraph(image: Image, rel_id: str, shape_id: int, cx: int, cy: int) -> str:
    """Render w:p/w:r/w:drawing markup for an inline picture."""
    inline = CT_Inline.new_pic_inline(shape_id, rel_id, image.filename, cx, cy)
    drawing = OxmlElement("w:drawing")
    drawing.append(inline)
    run = OxmlElement("w:r")
    run.append(drawing)
    paragraph = OxmlElement("w:p")
    paragraph.append(run)
    return etree.tostring(paragraph, encoding="unicode")


def set_image(parts: DocumentParts, search: str, path: str,
              options: Optional[Dict[str, Any]] = None, limit: int = -1) -> int:
    """
    Replace paragraphs holding a placeholder with an inline picture.

    Args:
        parts: The document's parts; updated in place
        search: Placeholder name or token
        path: Image file to embed. It is stored as word/media/<basename>, so
            a later image with the same basename replaces its bytes for every
            picture pointing there.
        options: Optional 'width' and 'height' (python-docx Length or EMU).
            A single dimension keeps the aspect ratio.
        limit: Maximum number of pictures placed across all parts, negative
            for unlimited

    Returns:
        Number of placeholders replaced; 0 when path is not a file
    """
    if not path or not os.path.isfile(path):
        logger.debug("Image %s does not exist, nothing to embed", path)
        return 0

    search = ensure_macro(search)
    options = options or {}
    image = Image.from_file(path)
    cx, cy = image.scaled_dimensions(options.get("width"), options.get("height"))
    filename = os.path.basename(path)

    total = 0
    remaining = limit
    for part in parts:
        if remaining == 0:
            break
        if search not in part.content:
            continue

        had_relationships = part.relationships is not None
        rels = parts.relationships_for(part)
        previous_rels = rels.content
        rel_id = add_image_relationship(rels, f"media/{filename}")

        def build(slot: etree._Element, nsmap) -> List[etree._Element]:
            shape_id = next_shape_id(slot.getroottree().getroot())
            elements = parse_fragment(render_picture_paragraph(image, rel_id, shape_id, cx, cy), nsmap)
            inherit_paragraph_properties(slot, elements)
            return elements

        result = replace_paragraphs(part.content, search, build, remaining)
        if result.outcome is not Outcome.REPLACED:
            if had_relationships:
                rels.content = previous_rels
            else:
                part.relationships = None
            continue

        part.content = result.content
        parts.add_media(filename, image.blob)
        parts.register_default_content_type(image.ext, image.content_type)
        logger.debug("Embedded %s as %s in %s (%d time(s))", filename, rel_id, part.name, result.count)
        total += result.count
        if remaining > 0:
            remaining -= result.count
    return total
