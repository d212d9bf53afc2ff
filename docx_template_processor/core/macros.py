"""
Placeholder (macro) handling: repair, normalization, discovery and suffixing.

A macro is a ${name} token. Word processors may split one token across
several formatting runs while it is typed, e.g.

    $</w:t></w:r><w:r><w:t>{cust</w:t></w:r><w:r><w:t>omer}

fix_broken_macros glues those pieces back together so that every later pass
can treat a macro as a plain substring of the part text.
"""
import re
from typing import List

MACRO_OPEN = "${"
MACRO_CLOSE = "}"

_BROKEN_MACRO = re.compile(r"\$(?:<[^>]*>)*\{[^}$]*\}")
_TAG = re.compile(r"<[^>]+>")
_MACRO = re.compile(r"\$\{(.*?)\}")


def fix_broken_macros(part_xml: str) -> str:
    """Strip the markup that fragments ${...} tokens. Idempotent."""
    def _clean(match: re.Match) -> str:
        return _TAG.sub("", match.group(0))

    return _BROKEN_MACRO.sub(_clean, part_xml)


def ensure_macro(search: str) -> str:
    """Wrap a bare name as ${name}; an already wrapped token is kept as is."""
    if search.startswith(MACRO_OPEN) and search.endswith(MACRO_CLOSE):
        return search
    return f"{MACRO_OPEN}{search}{MACRO_CLOSE}"


def get_variables_for_part(part_xml: str) -> List[str]:
    return _MACRO.findall(part_xml)


def suffix_macros(xml: str, index: int) -> str:
    """Rewrite every ${name} in xml as ${name#index}."""
    return _MACRO.sub(lambda m: f"{MACRO_OPEN}{m.group(1)}#{index}{MACRO_CLOSE}", xml)
