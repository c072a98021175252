"""
Text helpers used as rule postprocessors.

Each helper takes the raw string captured by a matcher and returns a cleaned
string. They never raise: unusable input gives "".
"""

import re
from typing import Tuple
from xml.sax.saxutils import unescape


# =============================================================================
# Whitespace and Markup
# =============================================================================

_WHITESPACE = re.compile(r"\s+")
_CDATA = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_XML_ENTITIES = {"&quot;": '"', "&apos;": "'"}


def collapse_whitespace(value: str) -> str:
    """Join wrapped lines and squeeze runs of whitespace."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def xml_text(value: str) -> str:
    """Element content as plain text (CDATA unwrapped, entities decoded)."""
    if not value:
        return ""
    value = _CDATA.sub(lambda m: m.group(1), value)
    return collapse_whitespace(unescape(value, _XML_ENTITIES))


def first_line(value: str) -> str:
    if not value:
        return ""
    return value.strip().splitlines()[0].strip() if value.strip() else ""


# =============================================================================
# Composite "name - code" Fields
# =============================================================================

# "ROSSI SRL, VIA ROMA 1 cod=(C001)" / "MARIO ROSSI (12345)"
_TRAILING_CODE = re.compile(r"(?:cod\s*=\s*)?\(\s*([^()]*?)\s*\)\s*$", re.IGNORECASE)
# "0012 - ROSSI SRL"
_NUMERIC_PREFIX = re.compile(r"^\s*\w*\d\w*\s*-\s*")


def split_composite(value: str) -> Tuple[str, str]:
    """
    Split a composite "name (code)" field into its two parts.

    The trailing parenthesized code (optionally introduced by "cod=") is
    removed, a leading numeric "NNN -" prefix is dropped, and the name is
    truncated at the first comma to drop address noise.

    Examples:
        "0012 - ROSSI SRL, VIA ROMA 1 cod=(C001)" -> ("ROSSI SRL", "C001")
        "MARIO ROSSI (12345)" -> ("MARIO ROSSI", "12345")
        "ROSSI SRL" -> ("ROSSI SRL", "")
    """
    text = collapse_whitespace(value)
    if not text:
        return "", ""

    code = ""
    match = _TRAILING_CODE.search(text)
    if match:
        code = match.group(1).strip()
        text = text[:match.start()]

    text = _NUMERIC_PREFIX.sub("", text, count=1)
    name = text.split(",")[0].strip(" -")
    return name, code


def composite_name(value: str) -> str:
    return split_composite(value)[0]


def composite_code(value: str) -> str:
    return split_composite(value)[1]


# =============================================================================
# Field-specific Cleanup
# =============================================================================

_VAT_ID = re.compile(r"(\d{10,11})")
_CARRIER_NAME = re.compile(r"\w*\d\w*\s*-\s*([^,]+)")


def vat_id(value: str) -> str:
    """First 10-11 digit run (Italian VAT number / partita IVA)."""
    match = _VAT_ID.search(value or "")
    return match.group(1) if match else ""


def carrier_name(value: str) -> str:
    """Carrier name from "0042 - TRASPORTI ROSSI SRL, VIA ... P.IVA ..."."""
    text = collapse_whitespace(value)
    match = _CARRIER_NAME.search(text)
    if match:
        return match.group(1).strip()
    return composite_name(text)


def carrier_address(value: str) -> str:
    """Address part of the carrier block: what follows the first comma."""
    text = collapse_whitespace(value)
    if "," not in text:
        return ""
    address = text.split(",", 1)[1]
    address = re.sub(r"(?:P\.?\s*IVA|Partita\s+IVA)?\s*:?\s*\d{10,11}", "", address, flags=re.IGNORECASE)
    return address.strip(" ,-")


def unit_label(value: str) -> str:
    """Unit of measure without brackets: "(LT)" -> "LT"."""
    return re.sub(r"[()\[\]]", "", value or "").strip().upper()
