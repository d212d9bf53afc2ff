"""
Exceptions raised by the template processor.

Every expected failure of an engine operation derives from TemplateError so
callers can catch a single type. Argument misuse (wrong batch lengths,
negative clone counts) raises ValueError instead.
"""


class TemplateError(Exception):
    """Base class for all template processing errors."""
    pass


class CreateTemporaryFileError(TemplateError):
    """The temporary copy of the template could not be created."""

    def __init__(self, message: str = "Could not create a temporary file for the template."):
        super().__init__(message)


class CopyFileError(TemplateError):
    """The template could not be copied to its temporary location."""

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"Could not copy '{source}' to '{target}'.")


class MacroNotFoundError(TemplateError):
    """A placeholder required by the operation is absent from the document."""
    pass


class TemplateXMLError(TemplateError):
    """XML that must be well-formed (package metadata, caller fragments) is not."""
    pass


class TransformError(TemplateError):
    """An XSL stylesheet could not be imported, parameterized or applied."""
    pass


class PersistenceError(TemplateError):
    """The package could not be written back at save time."""
    pass
