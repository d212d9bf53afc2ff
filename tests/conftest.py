import zipfile
from pathlib import Path
from typing import Dict, Optional, Sequence

import pytest

from docx_template_processor.config import Settings
from tests.docx_builders import CONTENT_TYPES, PACKAGE_RELS, PNG_BYTES, document_xml, footer_xml, header_xml


@pytest.fixture
def make_docx(tmp_path: Path):
    """Factory writing a minimal .docx with the given body, headers and footers."""
    def _make(body: str, headers: Sequence[str] = (), footers: Sequence[str] = (),
              name: str = "template.docx", extra: Optional[Dict[str, str]] = None) -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("[Content_Types].xml", CONTENT_TYPES)
            archive.writestr("_rels/.rels", PACKAGE_RELS)
            archive.writestr("word/document.xml", document_xml(body))
            for index, header in enumerate(headers, start=1):
                archive.writestr(f"word/header{index}.xml", header_xml(header))
            for index, footer in enumerate(footers, start=1):
                archive.writestr(f"word/footer{index}.xml", footer_xml(footer))
            for entry, content in (extra or {}).items():
                archive.writestr(entry, content)
        return path

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    temp_dir = tmp_path / "work"
    temp_dir.mkdir()
    return Settings(output_escaping=False, temp_dir=str(temp_dir))


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "photo.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def second_png_file(tmp_path: Path) -> Path:
    path = tmp_path / "logo.png"
    path.write_bytes(PNG_BYTES)
    return path
