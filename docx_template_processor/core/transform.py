"""
XSL transformation of the main document part.
"""
import logging
from typing import Mapping, Optional, Union

from lxml import etree

from docx_template_processor.core.parts import DocumentParts
from docx_template_processor.exceptions import TransformError
from docx_template_processor.utils.xml_utils import parse_part, serialize_part

logger = logging.getLogger(__name__)

Stylesheet = Union[str, bytes, etree._Element, etree._ElementTree]


def _load_stylesheet(xsl: Stylesheet) -> etree.XSLT:
    try:
        if isinstance(xsl, (str, bytes)):
            data = xsl.encode("utf-8") if isinstance(xsl, str) else xsl
            xsl = etree.fromstring(data)
        return etree.XSLT(xsl)
    except (etree.XMLSyntaxError, etree.XSLTParseError) as e:
        raise TransformError(f"Could not import the given XSL style sheet: {e}") from e


def _bind_parameters(options: Optional[Mapping[str, str]], options_uri: str) -> dict:
    """
    Turn option values into XSLT string parameters.

    A namespace URI qualifies every parameter name as {uri}name.
    """
    parameters = {}
    for name, value in (options or {}).items():
        if not isinstance(name, str) or not name:
            raise TransformError(
                "Could not set values for the given XSL style sheet parameters: "
                f"invalid parameter name {name!r}"
            )
        key = f"{{{options_uri}}}{name}" if options_uri else name
        parameters[key] = etree.XSLT.strparam(str(value))
    return parameters


def apply_xsl_stylesheet(parts: DocumentParts, xsl: Stylesheet,
                         options: Optional[Mapping[str, str]] = None, options_uri: str = "") -> None:
    """
    Apply an XSL style sheet to the main document part.

    Args:
        parts: The document's parts; the main part is replaced by the result
        xsl: Style sheet as XML text or an lxml tree
        options: Style sheet parameters, name to string value
        options_uri: Namespace URI of the parameter names

    Raises:
        TransformError: naming the stage that failed
    """
    transform = _load_stylesheet(xsl)
    parameters = _bind_parameters(options, options_uri)

    try:
        document = parse_part(parts.main.content)
    except etree.XMLSyntaxError as e:
        raise TransformError(f"Could not load XML from the given template: {e}") from e

    try:
        result = transform(document, **parameters)
    except etree.XSLTError as e:
        raise TransformError(f"Could not transform the given XML document: {e}") from e

    root = result.getroot()
    if root is None:
        raise TransformError("Could not transform the given XML document: the result is empty.")
    parts.main.content = serialize_part(root, parts.main.content)
    logger.debug("Applied XSL style sheet to %s", parts.main.name)
