"""
In-memory store for the XML parts of a template.

Holds the main document part, the headers and footers, their relationship
manifests, the content types part and any media added during the session.
Operations read part.content, compute new text and assign it back; nothing
reaches the package until flush().
"""
import logging
import posixpath
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from lxml import etree

from docx_template_processor.core.macros import fix_broken_macros
from docx_template_processor.core.package import TemplatePackage
from docx_template_processor.exceptions import TemplateError, TemplateXMLError
from docx_template_processor.utils.xml_utils import CT_NS, EMPTY_RELATIONSHIPS, parse_part, serialize_part

logger = logging.getLogger(__name__)

MAIN_PART_NAME = "word/document.xml"
CONTENT_TYPES_NAME = "[Content_Types].xml"


def header_name(index: int) -> str:
    return f"word/header{index}.xml"


def footer_name(index: int) -> str:
    return f"word/footer{index}.xml"


def relationships_name(part_name: str) -> str:
    """word/header1.xml -> word/_rels/header1.xml.rels"""
    directory, filename = posixpath.split(part_name)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


@dataclass
class RelationshipPart:
    name: str
    content: str
    original: Optional[str] = None

    @property
    def modified(self) -> bool:
        return self.content != self.original


@dataclass
class Part:
    name: str
    content: str
    original: str = ""
    relationships: Optional[RelationshipPart] = None

    @property
    def modified(self) -> bool:
        return self.content != self.original


@dataclass
class DocumentParts:
    main: Part
    headers: List[Part] = field(default_factory=list)
    footers: List[Part] = field(default_factory=list)
    content_types: Optional[str] = None
    media: Dict[str, bytes] = field(default_factory=dict)
    _content_types_original: Optional[str] = None

    @classmethod
    def load(cls, package: TemplatePackage) -> "DocumentParts":
        """Extract and repair every part of the package."""
        main_xml = package.read(MAIN_PART_NAME)
        if main_xml is None:
            raise TemplateError(f"Package has no {MAIN_PART_NAME} part")

        parts = cls(main=_load_part(package, MAIN_PART_NAME, main_xml))
        for name_for, target in ((header_name, parts.headers), (footer_name, parts.footers)):
            index = 1
            while package.contains(name_for(index)):
                name = name_for(index)
                target.append(_load_part(package, name, package.read(name)))
                index += 1

        parts.content_types = package.read(CONTENT_TYPES_NAME)
        parts._content_types_original = parts.content_types
        logger.debug("Loaded %d header(s) and %d footer(s)", len(parts.headers), len(parts.footers))
        return parts

    def __iter__(self) -> Iterator[Part]:
        """Main part first, then headers, then footers."""
        yield self.main
        yield from self.headers
        yield from self.footers

    def relationships_for(self, part: Part) -> RelationshipPart:
        """Return the relationship manifest of a part, creating an empty one if missing."""
        if part.relationships is None:
            part.relationships = RelationshipPart(relationships_name(part.name), EMPTY_RELATIONSHIPS)
        return part.relationships

    def add_media(self, filename: str, blob: bytes) -> str:
        """Stage a media file; returns its target relative to the word/ folder."""
        self.media[f"word/media/{filename}"] = blob
        return f"media/{filename}"

    def register_default_content_type(self, extension: str, content_type: str) -> None:
        """
        Declare a content type for a file extension in [Content_Types].xml.

        Raises:
            TemplateXMLError: if the content types part is malformed
        """
        if self.content_types is None:
            return
        try:
            root = parse_part(self.content_types)
        except etree.XMLSyntaxError as e:
            raise TemplateXMLError(f"Malformed {CONTENT_TYPES_NAME}: {e}") from e

        extension = extension.lower()
        for default in root.iter(f"{{{CT_NS}}}Default"):
            if (default.get("Extension") or "").lower() == extension:
                return
        default = etree.Element(f"{{{CT_NS}}}Default")
        default.set("Extension", extension)
        default.set("ContentType", content_type)
        root.insert(0, default)
        self.content_types = serialize_part(root, self.content_types)

    def flush(self, package: TemplatePackage) -> None:
        """Write every modified part, manifest and staged media file to the package."""
        entries = {}
        for part in self:
            if part.modified:
                entries[part.name] = part.content
            if part.relationships is not None and part.relationships.modified:
                entries[part.relationships.name] = part.relationships.content
        if self.content_types is not None and self.content_types != self._content_types_original:
            entries[CONTENT_TYPES_NAME] = self.content_types
        entries.update(self.media)
        package.write(entries)

        for part in self:
            part.original = part.content
            if part.relationships is not None:
                part.relationships.original = part.relationships.content
        self._content_types_original = self.content_types
        self.media.clear()


def _load_part(package: TemplatePackage, name: str, xml: str) -> Part:
    repaired = fix_broken_macros(xml)
    part = Part(name=name, content=repaired, original=xml)
    rels_name = relationships_name(name)
    rels_xml = package.read(rels_name)
    if rels_xml is not None:
        part.relationships = RelationshipPart(rels_name, rels_xml, rels_xml)
    return part
