"""Date and amount grammars shared by parsers and column inference."""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger.parsers.reader import Cell, DateCell, NumberCell
from ledger.schemas.internal import DateFormat

# Order matters: when a sample parses under several grammars the first wins,
# so 01/02/2024 is read month-first unless some sample rules that out.
DATE_FORMAT_ORDER: tuple[DateFormat, ...] = (
    DateFormat.ISO,
    DateFormat.MDY,
    DateFormat.DMY,
    DateFormat.DMON_Y,
    DateFormat.MON_DY,
)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_FULL_MONTHS = {
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december", "sept",
}

_NUMERIC_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")

_DATE_PATTERNS: dict[DateFormat, re.Pattern] = {
    DateFormat.ISO: re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"),
    DateFormat.MDY: _NUMERIC_DATE,
    DateFormat.DMY: _NUMERIC_DATE,
    DateFormat.DMON_Y: re.compile(r"^(\d{1,2})[\s-]+([A-Za-z]{3,9})\.?,?[\s-]+(\d{4})$"),
    DateFormat.MON_DY: re.compile(r"^([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})$"),
}

CURRENCY_SYMBOLS = "$€£¥₹"
_CURRENCY = re.compile(r"[$€£¥₹]|\b(?:CAD|USD|EUR|GBP|INR|AUD)\b", re.IGNORECASE)
_AMOUNT_LIKE = (
    re.compile(r"^-?[\d,]+\.?\d*$"),
    re.compile(r"^-?[\d.]+,?\d*$"),
)
_CANONICAL_AMOUNT = re.compile(r"^(?:\d+(?:\.\d+)?|\.\d+)$")


def _month_number(token: str) -> int | None:
    lowered = token.lower().rstrip(".")
    if len(lowered) > 3 and lowered not in _FULL_MONTHS:
        return None
    return _MONTHS.get(lowered[:3])


def _make_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: str, date_format: DateFormat) -> date | None:
    """Parse ``text`` under one grammar; None when it does not fit."""
    text = (text or "").strip()
    match = _DATE_PATTERNS[date_format].match(text)
    if not match:
        return None

    a, b, c = match.groups()
    if date_format is DateFormat.ISO:
        return _make_date(int(a), int(b), int(c))
    if date_format is DateFormat.MDY:
        return _make_date(int(c), int(a), int(b))
    if date_format is DateFormat.DMY:
        return _make_date(int(c), int(b), int(a))

    if date_format is DateFormat.DMON_Y:
        month = _month_number(b)
        return _make_date(int(c), month, int(a)) if month else None
    month = _month_number(a)
    return _make_date(int(c), month, int(b)) if month else None


def parse_date_any(text: str, formats: tuple[DateFormat, ...] = DATE_FORMAT_ORDER) -> date | None:
    for date_format in formats:
        parsed = parse_date(text, date_format)
        if parsed is not None:
            return parsed
    return None


def cell_date(cell: Cell, date_format: DateFormat | None = None) -> date | None:
    """Date value of a cell, using ``date_format`` for text when given."""
    if isinstance(cell, DateCell):
        return cell.value
    if cell.is_empty or isinstance(cell, NumberCell):
        return None
    if date_format is not None:
        return parse_date(cell.text, date_format)
    return parse_date_any(cell.text)


def looks_like_date(cell: Cell) -> bool:
    return cell_date(cell) is not None


def looks_like_amount(cell: Cell) -> bool:
    if isinstance(cell, NumberCell):
        return True
    if cell.is_empty or isinstance(cell, DateCell):
        return False
    cleaned = re.sub(rf"[{CURRENCY_SYMBOLS}\s]", "", cell.text)
    if not cleaned:
        return False
    return any(pattern.match(cleaned) for pattern in _AMOUNT_LIKE)


def detect_date_format(samples: list[Cell], threshold: float = 0.8) -> DateFormat | None:
    """Pick the first grammar that parses at least ``threshold`` of the samples.

    Native spreadsheet dates count as parsed under every grammar.
    """
    samples = [cell for cell in samples if not cell.is_empty]
    if not samples:
        return None

    for date_format in DATE_FORMAT_ORDER:
        parsed = sum(1 for cell in samples if cell_date(cell, date_format) is not None)
        if parsed / len(samples) >= threshold:
            return date_format
    return None


def _normalize_separators(raw: str) -> str:
    if "," in raw and "." in raw:
        # The right-most separator is the decimal mark: 1.234,56 vs 1,234.56
        if raw.rfind(",") > raw.rfind("."):
            return raw.replace(".", "").replace(",", ".")
        return raw.replace(",", "")
    if "," in raw:
        if re.fullmatch(r"\d{1,3}(?:,\d{3})+", raw):
            return raw.replace(",", "")
        return raw.replace(",", ".")
    if raw.count(".") > 1 and re.fullmatch(r"\d{1,3}(?:\.\d{3})+", raw):
        return raw.replace(".", "")
    return raw


def parse_amount(text: str) -> Decimal:
    """Parse an amount string.

    Handles:
        - $1,234.56 and 1.234,56 € (dot- or comma-decimal)
        - (12.34), -12.34 and 12.34- as negatives
        - currency codes such as CAD or USD
        - blank text as zero

    Raises:
        ValueError: If the text is not an amount
    """
    raw = (text or "").strip()
    if not raw:
        return Decimal("0")

    negative = False
    if raw.startswith("(") and raw.endswith(")"):
        negative = True
        raw = raw[1:-1]

    raw = _CURRENCY.sub("", raw)
    raw = re.sub(r"\s+", "", raw).replace("'", "")
    if raw.endswith("-"):
        negative = True
        raw = raw[:-1]
    if raw.startswith("-"):
        negative = True
        raw = raw[1:]
    elif raw.startswith("+"):
        raw = raw[1:]

    normalized = _normalize_separators(raw)
    if not _CANONICAL_AMOUNT.match(normalized):
        raise ValueError(f"Could not parse amount: {text}")

    try:
        value = Decimal(normalized)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount: {text}") from e
    return -value if negative else value


def cell_amount(cell: Cell) -> Decimal:
    """Amount value of a cell; empty cells are zero.

    Raises:
        ValueError: If the cell holds text that is not an amount
    """
    if isinstance(cell, NumberCell):
        return cell.value
    if cell.is_empty:
        return Decimal("0")
    if isinstance(cell, DateCell):
        raise ValueError(f"Expected an amount, got a date: {cell.text}")
    return parse_amount(cell.text)


def to_cents(amount: Decimal) -> int:
    """Convert a major-unit amount to integer cents (half-up)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
