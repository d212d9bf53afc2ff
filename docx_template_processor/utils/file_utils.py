"""
File helpers for the template tools.
"""
import os
from typing import Tuple


def ensure_docx_extension(filename: str) -> str:
    """Append .docx to a filename that does not already end with it."""
    if not filename.lower().endswith(".docx"):
        return filename + ".docx"
    return filename


def check_file_writeable(filepath: str) -> Tuple[bool, str]:
    """
    Check whether a file can be written.

    Args:
        filepath: Path to an existing file or to a file about to be created

    Returns:
        Tuple of (is_writeable, error_message)
    """
    if os.path.exists(filepath):
        if not os.access(filepath, os.W_OK):
            return False, f"File {filepath} is not writeable"
        return True, ""
    directory = os.path.dirname(os.path.abspath(filepath))
    if not os.path.isdir(directory):
        return False, f"Directory {directory} does not exist"
    if not os.access(directory, os.W_OK):
        return False, f"Cannot create files in directory {directory}"
    return True, ""
