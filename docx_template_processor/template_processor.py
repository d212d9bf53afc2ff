"""
Template processor for Word documents.

Fills ${name} placeholders of a .docx template with text, HTML, images or
table markup, and clones table rows and paragraph blocks. The template is
loaded once into memory and written back on save; the original file is left
untouched.

    with TemplateProcessor("invoice.docx") as template:
        template.clone_row("item", 3)
        template.set_value(["item#1", "item#2", "item#3"], ["Pens", "Paper", "Ink"])
        template.set_value("customer", "ACME & Sons")
        template.save_as("invoice-001.docx")

Not thread safe: use one instance per document and call it from one thread.
"""
import logging
import os
import shutil
from typing import Any, Dict, List, Mapping, Optional

from docx_template_processor.config import Settings
from docx_template_processor.core import blocks, images, rich_text, rows, substitution, transform
from docx_template_processor.core.macros import get_variables_for_part
from docx_template_processor.core.package import TemplatePackage
from docx_template_processor.core.parts import DocumentParts
from docx_template_processor.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class TemplateProcessor:
    """A .docx template opened for processing."""

    def __init__(self, template_path: str, settings: Optional[Settings] = None):
        """
        Copy the template to a temporary file and load its parts.

        Args:
            template_path: Path to an existing .docx file
            settings: Processing settings, read from the environment if omitted

        Raises:
            CreateTemporaryFileError: if no temporary file can be created
            CopyFileError: if the template cannot be copied
            TemplateError: if the template is not a word-processing package
        """
        self.settings = settings or Settings.from_env()
        self._package = TemplatePackage(template_path, self.settings.temp_dir)
        try:
            self.parts = DocumentParts.load(self._package)
        except Exception:
            self._package.discard()
            raise
        self._handed_out = False

    def __enter__(self) -> "TemplateProcessor":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def temporary_filename(self) -> str:
        return self._package.filename

    def set_value(self, search, replace, limit: int = -1) -> int:
        """
        Replace placeholders with values in the body, headers and footers.

        Args:
            search: Placeholder name ('customer' or '${customer}') or a list
            replace: Value, or a list of values paired with a list of names.
                A value starting with <w:tbl> replaces the whole paragraph
                holding the placeholder.
            limit: Replacements allowed per part, -1 for all

        Returns:
            Number of replacements made
        """
        return substitution.set_value(
            self.parts, search, replace, limit, output_escaping=self.settings.output_escaping
        )

    def set_html(self, search: str, html: str, limit: int = -1) -> int:
        """Replace the paragraphs holding a placeholder with paragraphs rendered from HTML."""
        return rich_text.set_html(self.parts, search, html, limit)

    def set_image(self, search: str, path: str, options: Optional[Dict[str, Any]] = None, limit: int = -1) -> int:
        """Replace the paragraphs holding a placeholder with an inline picture."""
        return images.set_image(self.parts, search, path, options, limit)

    def get_variables(self) -> List[str]:
        """Names of all placeholders, main part first, then headers, then footers."""
        variables = []
        for part in self.parts:
            for name in get_variables_for_part(part.content):
                if name not in variables:
                    variables.append(name)
        return variables

    def clone_row(self, search: str, number_of_clones: int) -> None:
        """Clone the table row holding a placeholder; placeholders in copy i get a #i suffix."""
        rows.clone_row(self.parts, search, number_of_clones)

    def clone_block(self, name: str, clones: int = 1, apply: bool = True) -> Optional[str]:
        """Clone the block ${name} ... ${/name}; returns its body XML or None."""
        return blocks.clone_block(self.parts, name, clones, apply)

    def replace_block(self, name: str, xml: str) -> bool:
        return blocks.replace_block(self.parts, name, xml)

    def delete_block(self, name: str) -> bool:
        return blocks.delete_block(self.parts, name)

    def apply_xsl_stylesheet(self, xsl, options: Optional[Mapping[str, str]] = None, options_uri: str = "") -> None:
        transform.apply_xsl_stylesheet(self.parts, xsl, options, options_uri)

    def save(self) -> str:
        """
        Write all parts back into the temporary package.

        Returns:
            Path of the temporary package; the caller owns it from now on

        Raises:
            PersistenceError: if the package cannot be written
        """
        self.parts.flush(self._package)
        self._handed_out = True
        return self._package.filename

    def save_as(self, filename: str) -> None:
        """
        Save and move the result to filename, replacing any existing file.

        Raises:
            PersistenceError: if the package cannot be written or moved
        """
        temporary = self.save()
        try:
            if os.path.exists(filename):
                os.remove(filename)
            shutil.move(temporary, filename)
        except OSError as e:
            raise PersistenceError(f"Could not move {temporary} to {filename}: {e}") from e
        logger.debug("Saved template to %s", filename)

    def close(self) -> None:
        """Remove the temporary package unless save() handed it to the caller."""
        if not self._handed_out:
            self._package.discard()
