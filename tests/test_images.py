import pytest
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.shared import Emu

from docx_template_processor.core.images import (
    add_image_relationship,
    next_relationship_id,
    next_shape_id,
    set_image,
)
from docx_template_processor.core.parts import RelationshipPart
from docx_template_processor.exceptions import TemplateXMLError
from tests.docx_builders import DECLARATION, NS, make_parts, paragraph, parse, texts

REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
DRAWING_NS = dict(NS, wp=WP_NS, a="http://schemas.openxmlformats.org/drawingml/2006/main",
                  pic="http://schemas.openxmlformats.org/drawingml/2006/picture",
                  r="http://schemas.openxmlformats.org/officeDocument/2006/relationships")


def _manifest(*ids: str) -> str:
    entries = "".join(
        f'<Relationship Id="{rel_id}" Type="{RT.STYLES}" Target="styles.xml"/>' for rel_id in ids
    )
    return DECLARATION + f'<Relationships xmlns="{REL_NS}">{entries}</Relationships>'


# ========= Relationship bookkeeping =========

def test_next_relationship_id_after_highest():
    assert next_relationship_id(parse(_manifest("rId1", "rId7"))) == 8


def test_next_relationship_id_counts_non_numeric_ids():
    assert next_relationship_id(parse(_manifest("styles", "theme"))) == 3


def test_add_image_relationship():
    rels = RelationshipPart("word/_rels/document.xml.rels", _manifest("rId1"))
    assert add_image_relationship(rels, "media/photo.png") == "rId2"
    relationship = parse(rels.content).findall(f"{{{REL_NS}}}Relationship")[-1]
    assert relationship.get("Target") == "media/photo.png"
    assert relationship.get("Type") == RT.IMAGE
    assert rels.content.startswith("<?xml")


def test_add_image_relationship_malformed_manifest():
    rels = RelationshipPart("word/_rels/document.xml.rels", "<Relationships>")
    with pytest.raises(TemplateXMLError):
        add_image_relationship(rels, "media/photo.png")


def test_next_shape_id():
    xml = f'<root xmlns:wp="{WP_NS}"><wp:docPr id="4" name="a"/><wp:docPr id="9" name="b"/></root>'
    assert next_shape_id(parse(xml)) == 10


# ========= Placing pictures =========

def test_set_image_replaces_paragraph(png_file):
    properties = '<w:pPr><w:jc w:val="center"/></w:pPr>'
    parts = make_parts(paragraph("Logo") + paragraph("${logo}", properties=properties))
    assert set_image(parts, "logo", str(png_file)) == 1

    root = parse(parts.main.content)
    assert "${logo}" not in parts.main.content
    assert texts(root) == ["Logo"]
    inline = root.find(".//wp:inline", DRAWING_NS)
    assert inline is not None
    picture_paragraph = root.findall(".//w:body/w:p", NS)[1]
    assert picture_paragraph.find("w:pPr/w:jc", NS).get(f"{{{NS['w']}}}val") == "center"

    blip = root.find(".//a:blip", DRAWING_NS)
    rel_id = blip.get(f"{{{DRAWING_NS['r']}}}embed")
    rels = parse(parts.main.relationships.content)
    targets = {rel.get("Id"): rel.get("Target") for rel in rels}
    assert targets[rel_id] == "media/photo.png"

    assert parts.media == {"word/media/photo.png": png_file.read_bytes()}
    assert 'Extension="png"' in parts.content_types
    assert 'ContentType="image/png"' in parts.content_types


def test_set_image_size_keeps_aspect_ratio(png_file):
    parts = make_parts(paragraph("${logo}"))
    set_image(parts, "logo", str(png_file), {"width": Emu(914400)})
    extent = parse(parts.main.content).find(".//wp:inline/wp:extent", DRAWING_NS)
    assert extent.get("cx") == "914400"
    assert extent.get("cy") == "914400"


def test_set_image_limit_is_global(png_file):
    parts = make_parts(paragraph("${logo}") + paragraph("${logo}"), headers=[paragraph("${logo}")])
    assert set_image(parts, "logo", str(png_file), limit=2) == 2
    assert "${logo}" not in parts.main.content
    assert "${logo}" in parts.headers[0].content
    assert parts.headers[0].relationships is None


def test_set_image_unique_shape_ids(png_file):
    parts = make_parts(paragraph("${logo}") + paragraph("${logo}"))
    set_image(parts, "logo", str(png_file))
    ids = [doc_pr.get("id") for doc_pr in parse(parts.main.content).iterfind(".//wp:docPr", DRAWING_NS)]
    assert len(ids) == 2
    assert len(set(ids)) == 2


def test_set_image_missing_file(tmp_path):
    parts = make_parts(paragraph("${logo}"))
    before = parts.main.content
    assert set_image(parts, "logo", str(tmp_path / "missing.png")) == 0
    assert parts.main.content == before
    assert parts.media == {}


def test_set_image_no_placeholder_adds_nothing(png_file):
    parts = make_parts(paragraph("no picture here"))
    assert set_image(parts, "logo", str(png_file)) == 0
    assert parts.main.relationships is None
    assert parts.media == {}


def test_set_image_placeholder_not_in_text_rolls_back(png_file):
    """A token that only shows up in an attribute gets no relationship."""
    parts = make_parts(paragraph("plain", attributes='w:rsidR="${logo}"'))
    assert set_image(parts, "logo", str(png_file)) == 0
    assert parts.main.relationships is None


def test_set_image_same_basename_shares_media_entry(png_file, tmp_path):
    other_dir = tmp_path / "other"
    other_dir.mkdir()
    other = other_dir / png_file.name
    other.write_bytes(png_file.read_bytes() + b"\x00")
    parts = make_parts(paragraph("${first}") + paragraph("${second}"))
    set_image(parts, "first", str(png_file))
    set_image(parts, "second", str(other))
    assert list(parts.media) == ["word/media/photo.png"]
    assert parts.media["word/media/photo.png"] == other.read_bytes()
