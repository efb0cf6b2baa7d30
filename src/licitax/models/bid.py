"""Bid (licitação) record and its dispute-room sub-records."""

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from licitax.models.status import DISPUTE_STARTED_STATUSES, PRE_DISPUTE_STATUSES, BidStatus

LimitType = Literal["valor", "percentual"]


class Operator(BaseModel):
    """Operator identity stamped on messages and finalize actions."""

    id: str
    display_name: str
    cpf: Optional[str] = None


class ProposalItem(BaseModel):
    """One priced line (lot) of the tender proposal."""

    id: str
    lote: Optional[str] = None
    descricao: str = ""
    unidade: str = "UN"
    quantidade: int = Field(..., gt=0)
    valor_unitario_estimado: Optional[Decimal] = None

    # Set at finalize time only
    valor_unitario_final_cliente: Optional[Decimal] = None
    valor_total_final_cliente: Optional[Decimal] = None


class DisputeConfig(BaseModel):
    """Client limit for the dispute, persisted when the dispute starts."""

    limite_tipo: LimitType
    limite_valor: Decimal = Field(..., description="Currency amount or 0-100 percentage")
    valor_calculado_ate_onde_pode_chegar: Decimal = Field(
        ..., description="Lowest price the client authorized"
    )


class DisputeMessage(BaseModel):
    """Entry of the dispute journal."""

    id: str
    timestamp: datetime
    texto: str = Field(..., min_length=1)
    autor: str


class DisputeLog(BaseModel):
    """Session record: timing, journal and outcome."""

    iniciada_em: Optional[datetime] = None
    finalizada_em: Optional[datetime] = None
    duracao: Optional[str] = None
    iniciada_por: Optional[str] = None
    mensagens: list[DisputeMessage] = Field(default_factory=list)

    cliente_venceu: Optional[bool] = None
    posicao_cliente: Optional[int] = Field(default=None, ge=1)
    itens_proposta_final_cliente: list[ProposalItem] = Field(default_factory=list)
    valor_final_proposta_cliente: Optional[Decimal] = None


class Bid(BaseModel):
    """Canonical licitação record managed on behalf of a client."""

    id: str = Field(..., description="Protocol, e.g. LIC-1717000000000")
    numero: str = ""
    cliente_id: str = ""
    cliente_nome: str = ""
    cliente_cnpj: Optional[str] = None

    orgao_comprador: Optional[str] = None
    modalidade: Optional[str] = None
    plataforma: Optional[str] = None
    data_inicio: Optional[datetime] = None
    data_homologacao: Optional[datetime] = None

    status: BidStatus = BidStatus.AGUARDANDO_ANALISE
    valor_cobrado: Decimal = Decimal("0")
    valor_referencia_edital: Optional[Decimal] = None

    itens_proposta: list[ProposalItem] = Field(default_factory=list)
    disputa_config: Optional[DisputeConfig] = None
    disputa_log: Optional[DisputeLog] = None
    observacoes_proposta_final: Optional[str] = None

    @model_validator(mode="after")
    def _check_dispute_records(self) -> "Bid":
        ids = [item.id for item in self.itens_proposta]
        if len(ids) != len(set(ids)):
            raise ValueError("itens_proposta ids must be unique")
        started = self.disputa_config is not None and bool(
            self.disputa_log and self.disputa_log.iniciada_em
        )
        # Later statuses are unchecked: bids may reach them without a dispute.
        if self.status in DISPUTE_STARTED_STATUSES and not started:
            raise ValueError(f"status {self.status.value} requires disputa_config and disputa_log.iniciada_em")
        if self.status in PRE_DISPUTE_STATUSES and (
            self.disputa_config is not None or (self.disputa_log and self.disputa_log.iniciada_em)
        ):
            raise ValueError(f"status {self.status.value} cannot carry dispute records")
        return self

    def item(self, item_id: str) -> Optional[ProposalItem]:
        """Return the proposal item with the given id, if any."""
        for it in self.itens_proposta:
            if it.id == item_id:
                return it
        return None


def new_bid(
    *,
    numero: str,
    cliente_id: str,
    cliente_nome: str,
    status: BidStatus = BidStatus.AGUARDANDO_ANALISE,
    **fields,
) -> Bid:
    """Create a bid with a fresh protocol id (LIC-<epoch millis>)."""
    protocol = f"LIC-{int(time.time() * 1000)}"
    return Bid(
        id=protocol,
        numero=numero,
        cliente_id=cliente_id,
        cliente_nome=cliente_nome,
        status=status,
        **fields,
    )


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)
