"""Client limit ("até onde pode chegar") calculation."""

from decimal import Decimal
from typing import Optional

from licitax.money import as_decimal, parse_percent

_HUNDRED = Decimal("100")


def parse_limit_value(limite_tipo: str, limite_valor: object) -> Optional[Decimal]:
    """Parse raw limit input: BRL amount for "valor", percentage for "percentual"."""
    if limite_tipo == "valor":
        return as_decimal(limite_valor)
    if limite_tipo == "percentual":
        return parse_percent(limite_valor)
    return None


def compute_ceiling(
    valor_referencia_edital: object,
    limite_tipo: Optional[str],
    limite_valor: object,
) -> Optional[Decimal]:
    """
    Lowest price the client may reach in the dispute.

    - "valor": the absolute limit itself (must be >= 0).
    - "percentual": reference minus limite_valor percent of it (0-100).

    Returns None when any input is missing or invalid; never raises.
    """
    reference = as_decimal(valor_referencia_edital)
    if reference is None or reference < 0:
        return None

    limit = parse_limit_value(limite_tipo or "", limite_valor)
    if limit is None:
        return None

    if limite_tipo == "valor":
        return limit if limit >= 0 else None

    if not (0 <= limit <= _HUNDRED):
        return None
    return reference - reference * (limit / _HUNDRED)
