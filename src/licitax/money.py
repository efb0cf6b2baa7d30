"""Brazilian currency (BRL) and percentage parsing/formatting."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, int, float]

# "R$ 1.234.567,89", "1234,5", "45000" (no thousands separator), "0"
_BRL_GROUPED = re.compile(r"^\d{1,3}(?:\.\d{3})+(?:,\d+)?$")
_BRL_PLAIN = re.compile(r"^\d+(?:,\d+)?$")
_PERCENT = re.compile(r"^(\d+(?:[.,]\d+)?)\s*%?$")

_CENTS = Decimal("0.01")


def _finite(value: Decimal) -> Optional[Decimal]:
    return value if value.is_finite() else None


def as_decimal(value: object) -> Optional[Decimal]:
    """
    Coerce a number or BRL text to Decimal. Returns None for anything that
    is not a finite, unambiguous amount. bool is rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return _finite(value)
    if isinstance(value, (int, float)):
        try:
            return _finite(Decimal(str(value)))
        except InvalidOperation:
            return None
    if isinstance(value, str):
        return parse_brl(value)
    return None


def parse_brl(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse free-text BRL input ("R$ 1.234,56") to a non-negative Decimal.
    Dots are thousands separators, comma is the decimal mark. Empty,
    negative, or ambiguous text (e.g. "4500.50") yields None.
    """
    if text is None:
        return None
    cleaned = text.replace("\xa0", " ").strip()
    if cleaned.startswith("R$"):
        cleaned = cleaned[2:]
    cleaned = cleaned.replace(" ", "")
    if not cleaned:
        return None
    if not (_BRL_GROUPED.match(cleaned) or _BRL_PLAIN.match(cleaned)):
        return None
    try:
        return Decimal(cleaned.replace(".", "").replace(",", "."))
    except InvalidOperation:
        return None


def format_brl(value: Optional[Number]) -> str:
    """Render as "R$ 1.234,56"; None renders as empty string."""
    if value is None:
        return ""
    amount = Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    body = f"{abs(amount):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{sign}R$ {body}"


def parse_percent(value: object) -> Optional[Decimal]:
    """Parse "10", "10%", "12,5%" or a number to Decimal. No range check."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, str):
        return as_decimal(value)
    m = _PERCENT.match(value.strip())
    if not m:
        return None
    try:
        return Decimal(m.group(1).replace(",", "."))
    except InvalidOperation:
        return None


def format_percent(value: Optional[Number]) -> str:
    """Render a percentage as "12,5%"."""
    if value is None:
        return ""
    text = format(Decimal(str(value)).normalize(), "f")
    return f"{text.replace('.', ',')}%"
