"""Value normalization shared by every record producer.

Numbers and dates arrive in several shapes: Italian-formatted text from PDF
text and OCR ("15.230,00"), plain dot-decimal text from XML ("15230.00"),
spreadsheet cells (floats, Excel serial dates) and US-style dates from the
price spreadsheet. Everything is normalized here so that records only ever
hold non-negative Decimals and ISO date strings.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


ZERO = Decimal("0")

# Excel's day zero (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)

_MULTI_VALUE = re.compile(r",\s+\d")
_NUMBER_CHARS = re.compile(r"[^\d.,]")


# =============================================================================
# Numbers
# =============================================================================

def parse_number(value: Any) -> Decimal:
    """Parse a number written in Italian or plain format.

    Rules:
    - Comma is the decimal separator, dots are thousand separators
      ("15.230,50" -> 15230.50, "4,5" -> 4.5)
    - Without a comma, a dot followed by exactly three digits is a thousand
      separator ("4.000" -> 4000, "1.234.567" -> 1234567); any other dot is
      a decimal point ("0.90000" -> 0.9, "0.835" -> 0.835)
    - "4.000, 3.954" holds two values; the first one is used
    - Signs, currency symbols and units are ignored, so the result is never
      negative

    Returns Decimal("0") when nothing numeric can be read.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return abs(value)
    if isinstance(value, (int, float)):
        return abs(Decimal(str(value)))

    text = str(value).strip()
    if not text:
        return ZERO

    if _MULTI_VALUE.search(text):
        text = text.split(",")[0].strip()

    cleaned = _NUMBER_CHARS.sub("", text)
    if not cleaned:
        return ZERO

    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".", 1).replace(",", "")
    elif "." in cleaned:
        last_dot = cleaned.rfind(".")
        digits_after = len(cleaned) - last_dot - 1
        if digits_after == 3 and not cleaned.startswith("0."):
            cleaned = cleaned.replace(".", "")
        elif cleaned.count(".") > 1:
            head, _, tail = cleaned.rpartition(".")
            cleaned = head.replace(".", "") + "." + tail

    try:
        return abs(Decimal(cleaned.strip(".") or "0"))
    except InvalidOperation:
        return ZERO


def parse_plain_number(value: Any) -> Decimal:
    """Parse a dot-decimal number (XML, spreadsheet cells).

    "15230.00" -> 15230.00 and "1.500" -> 1.5, unlike parse_number which
    would read the latter as fifteen hundred.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return abs(value)
    if isinstance(value, (int, float)):
        return abs(Decimal(str(value)))
    text = str(value).strip().replace(" ", "")
    if not text:
        return ZERO
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    try:
        return abs(Decimal(text))
    except InvalidOperation:
        return parse_number(text)


# =============================================================================
# Dates
# =============================================================================

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ](\d{1,2}):(\d{2})(?::(\d{2}))?)?")
_NUMERIC_DATE = re.compile(
    r"(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{2,4})(?:[\s,]+(\d{1,2})[:.](\d{2})(?:[:.](\d{2}))?)?"
)


def expand_two_digit_year(year: int) -> int:
    """Map 00-30 to 2000-2030 and 31-99 to 1931-1999."""
    if year >= 100:
        return year
    return 2000 + year if year <= 30 else 1900 + year


def excel_serial_to_date(serial: float) -> Optional[date]:
    """Convert an Excel serial day number to a date."""
    try:
        days = int(float(serial))
    except (TypeError, ValueError):
        return None
    if days <= 0:
        return None
    return EXCEL_EPOCH + timedelta(days=days)


def parse_date(value: Any, dayfirst: bool = True) -> Optional[datetime]:
    """Parse a date or date-time from any supported source format.

    Args:
        value: ISO text, "dd/mm/yyyy" text (or "mm/dd/yy[yy]" when
            dayfirst is False), a date/datetime, or an Excel serial number
        dayfirst: Whether slash dates put the day first. Documents do;
            the price spreadsheet does not.

    Returns:
        A datetime (midnight when no time was given) or None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        serial_date = excel_serial_to_date(float(value))
        return datetime(serial_date.year, serial_date.month, serial_date.day) if serial_date else None

    text = str(value).strip()
    if not text:
        return None

    iso = _ISO_DATE.match(text)
    if iso:
        parts = [int(p) if p else 0 for p in iso.groups()]
        try:
            return datetime(*parts)
        except ValueError:
            return None

    found = _NUMERIC_DATE.search(text)
    if found:
        first, second, year = int(found.group(1)), int(found.group(2)), int(found.group(3))
        day, month = (first, second) if dayfirst else (second, first)
        hour = int(found.group(4) or 0)
        minute = int(found.group(5) or 0)
        second_part = int(found.group(6) or 0)
        try:
            return datetime(expand_two_digit_year(year), month, day, hour, minute, second_part)
        except ValueError:
            return None

    if re.fullmatch(r"\d{5}(?:\.\d+)?", text):
        return parse_date(float(text))

    return None


def normalize_date(value: Any, dayfirst: bool = True, keep_time: bool = False) -> str:
    """Normalize any supported date to ISO text.

    Returns "YYYY-MM-DD", or "YYYY-MM-DDTHH:MM:SS" when keep_time is set and
    the source carried a time. Unparseable or empty input gives "".
    """
    parsed = parse_date(value, dayfirst=dayfirst)
    if parsed is None:
        return ""
    if keep_time and (parsed.hour or parsed.minute or parsed.second):
        return parsed.strftime("%Y-%m-%dT%H:%M:%S")
    return parsed.strftime("%Y-%m-%d")


def to_date(value: Any, dayfirst: bool = True) -> Optional[date]:
    """Parse to a plain date (or None)."""
    parsed = parse_date(value, dayfirst=dayfirst)
    return parsed.date() if parsed else None
