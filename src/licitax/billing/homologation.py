"""Homologation of won bids and the advisory fee debit it creates."""

import calendar
import logging
from datetime import datetime
from typing import Callable, Optional

from licitax.dispute.results import ActionResult
from licitax.models.bid import Bid, utcnow
from licitax.models.company import CompanyConfig
from licitax.models.status import BidStatus, status_label
from licitax.store.base import BidRepository
from licitax.store.debit_store import Debit, DebitStore

logger = logging.getLogger(__name__)

# Statuses from which a bid may be marked as homologated.
HOMOLOGABLE_STATUSES = frozenset(
    {
        BidStatus.DISPUTA_CONCLUIDA,
        BidStatus.EM_HOMOLOGACAO,
        BidStatus.AGUARDANDO_RECURSO,
        BidStatus.EM_PRAZO_CONTRARRAZAO,
        BidStatus.RECURSO_IMPUGNACAO,
    }
)


class HomologationResult(ActionResult):
    """ActionResult carrying the bid's debit."""

    debit: Optional[Debit] = None


def due_date(reference: datetime, day: int) -> datetime:
    """Same time next month on the given day, clamped to the month's length."""
    year, month = (reference.year + 1, 1) if reference.month == 12 else (reference.year, reference.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    return reference.replace(year=year, month=month, day=min(max(day, 1), last_day))


def build_debit(bid: Bid, homologated_at: datetime, company: Optional[CompanyConfig] = None) -> Debit:
    """Fee debit for a homologated bid; shares the bid's protocol id."""
    day = company.dia_vencimento_padrao if company else 15
    return Debit(
        id=bid.id,
        tipo="LICITACAO",
        cliente_nome=bid.cliente_nome,
        cliente_cnpj=bid.cliente_cnpj,
        descricao=f"Serviços Licitação {bid.numero}",
        valor=bid.valor_cobrado,
        data_vencimento=due_date(homologated_at, day),
        data_referencia=homologated_at,
        status="PENDENTE",
        licitacao_numero=bid.numero,
    )


def send_to_homologation(repository: BidRepository, bid_id: str) -> ActionResult:
    """Move a concluded dispute won by the client to EM_HOMOLOGACAO."""
    bid = repository.get(bid_id)
    if bid is None:
        return ActionResult.failure("not_found", "Licitação não encontrada.")
    if bid.status != BidStatus.DISPUTA_CONCLUIDA or not (bid.disputa_log and bid.disputa_log.cliente_venceu):
        return ActionResult.failure(
            "state",
            f"Só disputas concluídas e vencidas pelo cliente vão para homologação "
            f"(atual: '{status_label(bid.status)}').",
            bid,
        )
    if not repository.patch(bid_id, {"status": BidStatus.EM_HOMOLOGACAO}):
        return ActionResult.failure("persistence", "Não foi possível atualizar o status.", bid)
    logger.info("Bid %s sent to homologation", bid_id)
    return ActionResult.success(repository.get(bid_id))


def homologate(
    repository: BidRepository,
    debits: DebitStore,
    bid_id: str,
    *,
    company: Optional[CompanyConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> HomologationResult:
    """
    Mark a bid as PROCESSO_HOMOLOGADO and create its PENDENTE fee debit.
    Homologating an already homologated bid returns the existing debit.
    """
    bid = repository.get(bid_id)
    if bid is None:
        return HomologationResult.failure("not_found", "Licitação não encontrada.")
    if bid.status == BidStatus.PROCESSO_HOMOLOGADO:
        return HomologationResult.success(bid, debit=debits.get(bid_id))
    if bid.status not in HOMOLOGABLE_STATUSES:
        return HomologationResult.failure(
            "state",
            f"Não é possível homologar a licitação em '{status_label(bid.status)}'.",
            bid,
        )
    if bid.status == BidStatus.DISPUTA_CONCLUIDA and not (bid.disputa_log and bid.disputa_log.cliente_venceu):
        return HomologationResult.failure(
            "state", "Só disputas vencidas pelo cliente podem ser homologadas.", bid
        )

    now = (clock or utcnow)()
    changes = {"status": BidStatus.PROCESSO_HOMOLOGADO, "data_homologacao": now}
    if not repository.patch(bid_id, changes):
        return HomologationResult.failure("persistence", "Não foi possível homologar a licitação.", bid)

    homologated = repository.get(bid_id)
    debit = debits.upsert(build_debit(homologated, now, company))
    logger.info("Bid %s homologated; debit %s due %s", bid_id, debit.id, debit.data_vencimento.date())
    return HomologationResult.success(homologated, debit=debit)
