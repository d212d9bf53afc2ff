"""
Mail-merge style processing of Word (.docx) templates.
"""
from docx_template_processor.config import Settings
from docx_template_processor.exceptions import (
    CopyFileError,
    CreateTemporaryFileError,
    MacroNotFoundError,
    PersistenceError,
    TemplateError,
    TemplateXMLError,
    TransformError,
)
from docx_template_processor.template_processor import TemplateProcessor

__all__ = [
    "CopyFileError",
    "CreateTemporaryFileError",
    "MacroNotFoundError",
    "PersistenceError",
    "Settings",
    "TemplateError",
    "TemplateProcessor",
    "TemplateXMLError",
    "TransformError",
]
