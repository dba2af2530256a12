"""Text, phone, date and number normalization helpers."""

import logging
import math
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

PLACEHOLDER_PHONE = "00000000000"

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_BR_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_NON_KEY_CHARS = re.compile(r"[^a-z0-9_]")
_WHITESPACE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Remove diacritics (NFD decomposition, combining marks dropped)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_header(header: Any) -> str:
    """
    Normalize a column header to a lookup key.

    Lower-cases, strips diacritics, turns whitespace runs into a single
    underscore and drops anything outside ``[a-z0-9_]``.

    >>> normalize_header("Data de Nascimento")
    'data_de_nascimento'
    """
    text = strip_accents(str(header).strip().lower())
    text = _WHITESPACE.sub("_", text)
    return _NON_KEY_CHARS.sub("", text)


def normalize_name(value: Any) -> str:
    """Comparison key for names: accents stripped, lower-case, single spaces."""
    if value is None:
        return ""
    text = strip_accents(str(value)).lower().strip()
    return _WHITESPACE.sub(" ", text)


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after trimming."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def digits_only(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def format_phone(value: Any) -> Optional[str]:
    """
    Format Brazilian phone numbers.

    11 digits become ``(XX) XXXXX-XXXX`` and 10 digits ``(XX) XXXX-XXXX``.
    Anything else is returned trimmed, as given.
    """
    if is_blank(value):
        return None
    digits = digits_only(value)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return str(value).strip()


def phone_key(value: Any) -> Optional[str]:
    """Digits used to match phones across files; None for blanks and placeholders."""
    digits = digits_only(value)
    if not digits or set(digits) == {"0"}:
        return None
    if len(digits) in (12, 13) and digits.startswith("55"):
        digits = digits[2:]
    return digits


def normalize_date(value: Any) -> Optional[str]:
    """
    Normalize a date to ``YYYY-MM-DD``.

    Accepts ``YYYY-MM-DD``, ``DD/MM/YYYY`` and ``DD-MM-YYYY`` directly and
    falls back to dateutil with day-first parsing. Returns None when the
    value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_blank(value):
        return None

    text = str(value).strip()
    try:
        match = _ISO_DATE.match(text)
        if match:
            year, month, day = (int(g) for g in match.groups())
            return date(year, month, day).isoformat()

        match = _BR_DATE.match(text)
        if match:
            day, month, year = (int(g) for g in match.groups())
            return date(year, month, day).isoformat()

        return date_parser.parse(text, dayfirst=True).date().isoformat()
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse date value: {text!r}")
        return None


def normalize_datetime(value: Any) -> Optional[str]:
    """Normalize a date/time to an ISO 8601 string (no timezone conversion)."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat()
    if is_blank(value):
        return None

    text = str(value).strip()
    try:
        # Year-first strings must not go through day-first parsing
        if _ISO_DATE.match(text):
            return date_parser.parse(text).isoformat()
        return date_parser.parse(text, dayfirst=True).isoformat()
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse datetime value: {text!r}")
        return None


def datetime_key(value: Any) -> Optional[str]:
    """Naive ISO date/time for comparing timestamps; any UTC offset is dropped."""
    normalized = normalize_datetime(value)
    if normalized is None:
        return None
    return datetime.fromisoformat(normalized).replace(tzinfo=None).isoformat()


def parse_number(value: Any, default: Any = 0) -> Any:
    """
    Best-effort number parsing.

    Understands currency prefixes and Brazilian formatting
    (``R$ 1.234,56``). Returns ``default`` when nothing numeric is found.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else default
    if is_blank(value):
        return default

    text = re.sub(r"[^\d,.\-]", "", str(value))
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")

    try:
        number = float(text)
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def parse_active(value: Any) -> bool:
    """Only ``False``, ``"false"`` and ``"0"`` mean inactive."""
    if value is False:
        return False
    return str(value).strip().lower() not in ("false", "0")


def decode_bytes(content: bytes) -> str:
    """Decode file content as UTF-8 (BOM tolerated), falling back to latin-1."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("UTF-8 decode failed, trying latin-1")
        return content.decode("latin-1")
