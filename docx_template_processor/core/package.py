"""
Container access for the template being processed.

The template is copied to a temporary file on construction; every read comes
from that copy and save() rewrites it. The original template is never
touched.
"""
import logging
import os
import shutil
import tempfile
import zipfile
from typing import Dict, List, Optional, Union

from docx_template_processor.exceptions import (
    CopyFileError,
    CreateTemporaryFileError,
    PersistenceError,
    TemplateError,
)

logger = logging.getLogger(__name__)


class TemplatePackage:
    """A temporary, exclusively owned copy of a .docx package."""

    def __init__(self, template_path: str, temp_dir: Optional[str] = None):
        try:
            handle, self.filename = tempfile.mkstemp(prefix="WordTemplate", suffix=".docx", dir=temp_dir)
            os.close(handle)
        except OSError as e:
            raise CreateTemporaryFileError(f"Could not create a temporary file: {e}") from e

        try:
            shutil.copyfile(template_path, self.filename)
        except OSError as e:
            os.remove(self.filename)
            raise CopyFileError(template_path, self.filename) from e

        try:
            with zipfile.ZipFile(self.filename) as archive:
                self._names = archive.namelist()
        except zipfile.BadZipFile as e:
            os.remove(self.filename)
            raise TemplateError(f"Template {template_path} is not a word-processing package") from e

        logger.debug("Copied template %s to %s", template_path, self.filename)

    def names(self) -> List[str]:
        return list(self._names)

    def contains(self, name: str) -> bool:
        return name in self._names

    def read(self, name: str) -> Optional[str]:
        """Return the text of an entry, or None when the package lacks it."""
        if name not in self._names:
            return None
        with zipfile.ZipFile(self.filename) as archive:
            return archive.read(name).decode("utf-8")

    def write(self, entries: Dict[str, Union[str, bytes]]) -> None:
        """
        Rewrite the package with entries replaced or added.

        Entries not named in `entries` are copied verbatim, in their original
        order; new entries are appended.

        Raises:
            PersistenceError: if the package cannot be rewritten
        """
        directory = os.path.dirname(self.filename) or None
        try:
            handle, staging = tempfile.mkstemp(prefix="WordTemplate", suffix=".tmp", dir=directory)
            os.close(handle)
        except OSError as e:
            raise PersistenceError(f"Could not stage package {self.filename}: {e}") from e

        try:
            with zipfile.ZipFile(self.filename) as source, \
                    zipfile.ZipFile(staging, "w", zipfile.ZIP_DEFLATED) as target:
                for info in source.infolist():
                    if info.filename in entries:
                        data = entries[info.filename]
                        target.writestr(info, data.encode("utf-8") if isinstance(data, str) else data)
                    else:
                        target.writestr(info, source.read(info.filename))
                for name, data in entries.items():
                    if name in self._names:
                        continue
                    target.writestr(name, data.encode("utf-8") if isinstance(data, str) else data)
            os.replace(staging, self.filename)
        except (OSError, zipfile.BadZipFile) as e:
            if os.path.exists(staging):
                os.remove(staging)
            raise PersistenceError(f"Could not write package {self.filename}: {e}") from e

        self._names = self._names + [name for name in entries if name not in self._names]
        logger.debug("Wrote %d entries to %s", len(entries), self.filename)

    def discard(self) -> None:
        if os.path.exists(self.filename):
            os.remove(self.filename)
