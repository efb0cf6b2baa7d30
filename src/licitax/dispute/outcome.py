"""Dispute outcome and final proposal pricing."""

import re
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from licitax.models.bid import Bid, ProposalItem
from licitax.money import as_decimal

_POSITIVE_INT = re.compile(r"^\d+$")


class OutcomeInput(BaseModel):
    """What the operator enters in the outcome dialog."""

    cliente_venceu: Optional[bool] = None
    posicao_cliente: Optional[Any] = Field(default=None, description="int or text; required when the client lost")
    precos_unitarios: dict[str, Any] = Field(
        default_factory=dict,
        description="item id -> final unit price (Decimal, number or BRL text)",
    )
    observacoes: Optional[str] = None


class OutcomeRecord(BaseModel):
    """Validated outcome ready to be written to the dispute log."""

    cliente_venceu: bool
    posicao_cliente: Optional[int] = None
    itens: list[ProposalItem]
    valor_final: Decimal
    observacoes: Optional[str] = None


class OutcomeValidation(BaseModel):
    """Validation result; record is set only when ok."""

    ok: bool
    reason: Optional[str] = None
    record: Optional[OutcomeRecord] = None


def parse_position(value: object) -> Optional[int]:
    """Parse a finishing position: integer >= 1, as int or digit text."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, str):
        text = value.strip()
        if not _POSITIVE_INT.match(text):
            return None
        pos = int(text)
        return pos if pos >= 1 else None
    return None


def price_item(item: ProposalItem, unit_price: Decimal) -> ProposalItem:
    """Copy of item with final unit price and derived total."""
    return item.model_copy(
        update={
            "valor_unitario_final_cliente": unit_price,
            "valor_total_final_cliente": unit_price * item.quantidade,
        }
    )


def grand_total(items: list[ProposalItem]) -> Decimal:
    """Sum of valor_total_final_cliente over priced items."""
    return sum(
        (it.valor_total_final_cliente for it in items if it.valor_total_final_cliente is not None),
        Decimal("0"),
    )


def validate_outcome(bid: Bid, outcome: OutcomeInput) -> OutcomeValidation:
    """
    Check the outcome dialog input against the bid and price every item.
    Item order follows bid.itens_proposta.
    """
    if outcome.cliente_venceu is None:
        return OutcomeValidation(ok=False, reason="Informe se o cliente venceu a disputa.")

    posicao: Optional[int] = None
    if outcome.cliente_venceu is False:
        posicao = parse_position(outcome.posicao_cliente)
        if posicao is None:
            return OutcomeValidation(
                ok=False, reason="Posição do cliente deve ser um número inteiro maior que zero."
            )

    if not bid.itens_proposta:
        return OutcomeValidation(ok=False, reason="A licitação não possui itens de proposta.")

    known = {it.id for it in bid.itens_proposta}
    unknown = [item_id for item_id in outcome.precos_unitarios if item_id not in known]
    if unknown:
        return OutcomeValidation(ok=False, reason=f"Itens desconhecidos: {', '.join(sorted(unknown))}")

    priced: list[ProposalItem] = []
    for item in bid.itens_proposta:
        unit = as_decimal(outcome.precos_unitarios.get(item.id))
        if unit is None or unit < 0:
            return OutcomeValidation(
                ok=False,
                reason=f"Valor unitário final inválido ou ausente para o item {item.id}.",
            )
        priced.append(price_item(item, unit))

    observacoes = (outcome.observacoes or "").strip() or None
    return OutcomeValidation(
        ok=True,
        record=OutcomeRecord(
            cliente_venceu=outcome.cliente_venceu,
            posicao_cliente=posicao,
            itens=priced,
            valor_final=grand_total(priced),
            observacoes=observacoes,
        ),
    )
