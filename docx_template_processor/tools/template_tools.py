"""
Template tools.

High-level entry points that fill a .docx template and write the result to a
new file. Like the other tool functions they never raise: every outcome is
reported as a status message (or a JSON string for queries).
"""
import json
import os
from typing import Any, Dict, Optional

from docx.shared import Inches

from docx_template_processor.config import configure_logging
from docx_template_processor.template_processor import TemplateProcessor
from docx_template_processor.utils.file_utils import check_file_writeable, ensure_docx_extension


def _check_output(output_filename: str) -> Optional[str]:
    is_writeable, error_message = check_file_writeable(output_filename)
    if not is_writeable:
        return f"Cannot write output document: {error_message}"
    return None


async def list_template_variables(filename: str) -> str:
    """
    List the placeholders of a template.

    Args:
        filename: Path to the Word template

    Returns:
        JSON string with the placeholder names in document order
    """
    filename = ensure_docx_extension(filename)
    configure_logging()

    if not os.path.exists(filename):
        return json.dumps({
            'success': False,
            'error': f'Document {filename} does not exist'
        }, indent=2)

    try:
        with TemplateProcessor(filename) as template:
            variables = template.get_variables()
        return json.dumps({
            'success': True,
            'variables': variables,
            'total_variables': len(variables)
        }, indent=2)
    except Exception as e:
        return json.dumps({
            'success': False,
            'error': f'Failed to read template variables: {str(e)}'
        }, indent=2)


async def fill_template(filename: str, output_filename: str, values: Dict[str, Any], limit: int = -1) -> str:
    """Fill placeholders of a template with text values.

    Args:
        filename: Path to the Word template
        output_filename: Where to write the filled document
        values: Mapping of placeholder name to value
        limit: Replacements allowed per placeholder and part, -1 for all

    Returns:
        Status message indicating success or failure
    """
    filename = ensure_docx_extension(filename)
    output_filename = ensure_docx_extension(output_filename)
    configure_logging()

    if not os.path.exists(filename):
        return f"Document {filename} does not exist"
    if not isinstance(values, dict) or not values:
        return "Invalid parameter: values must be a non-empty mapping of placeholder names to values"
    error_message = _check_output(output_filename)
    if error_message:
        return error_message

    try:
        limit = int(limit)
    except (ValueError, TypeError):
        return "Invalid parameter: limit must be an integer"

    try:
        with TemplateProcessor(filename) as template:
            count = template.set_value(list(values.keys()), list(values.values()), limit)
            template.save_as(output_filename)
        return f"Filled {len(values)} placeholder(s) with {count} replacement(s); saved to {output_filename}"
    except Exception as e:
        return f"Failed to fill template: {str(e)}"


async def clone_template_row(filename: str, output_filename: str, search: str, count: int) -> str:
    """Clone the table row holding a placeholder.

    Args:
        filename: Path to the Word template
        output_filename: Where to write the result
        search: Placeholder inside the row to clone
        count: Number of rows to leave; placeholders in row i get the suffix #i

    Returns:
        Status message indicating success or failure
    """
    filename = ensure_docx_extension(filename)
    output_filename = ensure_docx_extension(output_filename)
    configure_logging()

    try:
        count = int(count)
    except (ValueError, TypeError):
        return "Invalid parameter: count must be an integer"
    if count < 0:
        return "Invalid parameter: count must not be negative"

    if not os.path.exists(filename):
        return f"Document {filename} does not exist"
    error_message = _check_output(output_filename)
    if error_message:
        return error_message

    try:
        with TemplateProcessor(filename) as template:
            template.clone_row(search, count)
            template.save_as(output_filename)
        return f"Row holding '{search}' cloned {count} time(s); saved to {output_filename}"
    except Exception as e:
        return f"Failed to clone row: {str(e)}"


async def fill_template_block(filename: str, output_filename: str, block_name: str, clones: int = 1) -> str:
    """Clone a ${name} ... ${/name} block; 0 clones deletes it.

    Args:
        filename: Path to the Word template
        output_filename: Where to write the result
        block_name: Block name without ${ }
        clones: Number of copies of the block body to keep

    Returns:
        Status message indicating success or failure
    """
    filename = ensure_docx_extension(filename)
    output_filename = ensure_docx_extension(output_filename)
    configure_logging()

    try:
        clones = int(clones)
    except (ValueError, TypeError):
        return "Invalid parameter: clones must be an integer"
    if clones < 0:
        return "Invalid parameter: clones must not be negative"

    if not os.path.exists(filename):
        return f"Document {filename} does not exist"
    error_message = _check_output(output_filename)
    if error_message:
        return error_message

    try:
        with TemplateProcessor(filename) as template:
            if template.clone_block(block_name, clones) is None:
                return f"Block '{block_name}' not found in {filename}"
            template.save_as(output_filename)
        return f"Block '{block_name}' cloned {clones} time(s); saved to {output_filename}"
    except Exception as e:
        return f"Failed to clone block: {str(e)}"


async def insert_template_image(filename: str, output_filename: str, search: str, image_path: str,
                                width: Optional[float] = None, height: Optional[float] = None) -> str:
    """Replace a placeholder with a picture.

    Args:
        filename: Path to the Word template
        output_filename: Where to write the result
        search: Placeholder to replace
        image_path: Image file to embed
        width: Picture width in inches (optional)
        height: Picture height in inches (optional); with only one dimension
                the other one keeps the aspect ratio

    Returns:
        Status message indicating success or failure
    """
    filename = ensure_docx_extension(filename)
    output_filename = ensure_docx_extension(output_filename)
    configure_logging()

    # Ensure numeric parameters are the correct type
    try:
        if width is not None:
            width = float(width)
        if height is not None:
            height = float(height)
    except (ValueError, TypeError):
        return "Invalid parameter: width and height must be numbers"

    if not os.path.exists(filename):
        return f"Document {filename} does not exist"
    if not os.path.isfile(image_path):
        return f"Image {image_path} does not exist"
    error_message = _check_output(output_filename)
    if error_message:
        return error_message

    options = {}
    if width is not None:
        options["width"] = Inches(width)
    if height is not None:
        options["height"] = Inches(height)

    try:
        with TemplateProcessor(filename) as template:
            count = template.set_image(search, image_path, options)
            if not count:
                return f"Placeholder '{search}' not found in {filename}"
            template.save_as(output_filename)
        return f"Image {os.path.basename(image_path)} inserted {count} time(s); saved to {output_filename}"
    except Exception as e:
        return f"Failed to insert image: {str(e)}"
