import zipfile
from pathlib import Path

import pytest

from docx_template_processor.core.package import TemplatePackage
from docx_template_processor.core.parts import DocumentParts, relationships_name
from docx_template_processor.exceptions import PersistenceError, TemplateXMLError
from tests.docx_builders import PACKAGE_RELS, entry_names, make_parts, paragraph, read_entry


def test_relationships_name():
    assert relationships_name("word/document.xml") == "word/_rels/document.xml.rels"
    assert relationships_name("word/header2.xml") == "word/_rels/header2.xml.rels"


def test_load_discovers_headers_and_footers(make_docx, settings):
    template = make_docx(
        paragraph("body"),
        headers=[paragraph("h1"), paragraph("h2")],
        footers=[paragraph("f1")],
        extra={"word/_rels/document.xml.rels": PACKAGE_RELS},
    )
    package = TemplatePackage(str(template), settings.temp_dir)
    try:
        parts = DocumentParts.load(package)
        assert [part.name for part in parts] == [
            "word/document.xml", "word/header1.xml", "word/header2.xml", "word/footer1.xml",
        ]
        assert parts.main.relationships.content == PACKAGE_RELS
        assert parts.headers[0].relationships is None
        assert not any(part.modified for part in parts)
    finally:
        package.discard()


def test_load_marks_repaired_parts_modified(make_docx, settings):
    template = make_docx("<w:p><w:r><w:t>$</w:t></w:r><w:r><w:t>{a}</w:t></w:r></w:p>")
    package = TemplatePackage(str(template), settings.temp_dir)
    try:
        parts = DocumentParts.load(package)
        assert "${a}" in parts.main.content
        assert parts.main.modified
    finally:
        package.discard()


def test_register_default_content_type_once():
    parts = make_parts(paragraph("x"))
    parts.register_default_content_type("PNG", "image/png")
    parts.register_default_content_type("png", "image/png")
    assert parts.content_types.count('Extension="png"') == 1


def test_register_default_content_type_malformed():
    parts = make_parts(paragraph("x"))
    parts.content_types = "<Types>"
    with pytest.raises(TemplateXMLError):
        parts.register_default_content_type("png", "image/png")


def test_flush_writes_modified_parts_and_media(make_docx, settings):
    template = make_docx(paragraph("${a}"), headers=[paragraph("head")])
    package = TemplatePackage(str(template), settings.temp_dir)
    try:
        parts = DocumentParts.load(package)
        parts.main.content = parts.main.content.replace("${a}", "done")
        parts.add_media("pixel.png", b"\x89PNG")
        parts.flush(package)

        assert "done" in read_entry(package.filename, "word/document.xml")
        assert read_entry(package.filename, "word/header1.xml") == read_entry(template, "word/header1.xml")
        assert entry_names(package.filename)[-1] == "word/media/pixel.png"
        assert parts.media == {}
        assert not parts.main.modified
    finally:
        package.discard()


def test_package_write_keeps_entry_order(make_docx, settings):
    template = make_docx(paragraph("x"), headers=[paragraph("h")])
    package = TemplatePackage(str(template), settings.temp_dir)
    try:
        package.write({"word/header1.xml": "<changed/>", "word/extra.xml": "<new/>"})
        assert entry_names(package.filename) == entry_names(template) + ["word/extra.xml"]
        assert package.contains("word/extra.xml")
        assert package.read("word/header1.xml") == "<changed/>"
    finally:
        package.discard()


def test_package_write_failure(make_docx, settings):
    template = make_docx(paragraph("x"))
    package = TemplatePackage(str(template), settings.temp_dir)
    Path(package.filename).write_bytes(b"corrupted")
    try:
        with pytest.raises(PersistenceError):
            package.write({"word/document.xml": "<x/>"})
    finally:
        package.discard()


def test_package_read_missing_entry(make_docx, settings):
    package = TemplatePackage(str(make_docx(paragraph("x"))), settings.temp_dir)
    try:
        assert package.read("word/footer1.xml") is None
        assert zipfile.is_zipfile(package.filename)
    finally:
        package.discard()
