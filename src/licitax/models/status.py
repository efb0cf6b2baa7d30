"""Bid workflow statuses and their display labels."""

from enum import Enum


class BidStatus(str, Enum):
    """Workflow states of a licitação."""

    AGUARDANDO_ANALISE = "AGUARDANDO_ANALISE"
    EM_ANALISE = "EM_ANALISE"
    DOCUMENTACAO_CONCLUIDA = "DOCUMENTACAO_CONCLUIDA"
    FALTA_DOCUMENTACAO = "FALTA_DOCUMENTACAO"
    AGUARDANDO_DISPUTA = "AGUARDANDO_DISPUTA"
    EM_DISPUTA = "EM_DISPUTA"
    DISPUTA_CONCLUIDA = "DISPUTA_CONCLUIDA"
    EM_HOMOLOGACAO = "EM_HOMOLOGACAO"
    AGUARDANDO_RECURSO = "AGUARDANDO_RECURSO"
    EM_PRAZO_CONTRARRAZAO = "EM_PRAZO_CONTRARRAZAO"
    PROCESSO_HOMOLOGADO = "PROCESSO_HOMOLOGADO"
    PROCESSO_ENCERRADO = "PROCESSO_ENCERRADO"
    RECURSO_IMPUGNACAO = "RECURSO_IMPUGNACAO"


STATUS_LABELS: dict[BidStatus, str] = {
    BidStatus.AGUARDANDO_ANALISE: "Aguardando Análise",
    BidStatus.EM_ANALISE: "Em Análise",
    BidStatus.DOCUMENTACAO_CONCLUIDA: "Documentação OK",
    BidStatus.FALTA_DOCUMENTACAO: "Falta Documento",
    BidStatus.AGUARDANDO_DISPUTA: "Aguardando Disputa",
    BidStatus.EM_DISPUTA: "Em Disputa",
    BidStatus.DISPUTA_CONCLUIDA: "Disputa Concluída",
    BidStatus.EM_HOMOLOGACAO: "Em Homologação",
    BidStatus.AGUARDANDO_RECURSO: "Aguardando Recurso",
    BidStatus.EM_PRAZO_CONTRARRAZAO: "Prazo Contrarrazão",
    BidStatus.PROCESSO_HOMOLOGADO: "Processo Homologado",
    BidStatus.PROCESSO_ENCERRADO: "Processo Encerrado",
    BidStatus.RECURSO_IMPUGNACAO: "Recurso/Impugnação",
}

# Dispute room transitions; re-finalize keeps a concluded dispute concluded.
DISPUTE_TRANSITIONS: dict[BidStatus, set[BidStatus]] = {
    BidStatus.AGUARDANDO_DISPUTA: {BidStatus.EM_DISPUTA},
    BidStatus.EM_DISPUTA: {BidStatus.DISPUTA_CONCLUIDA},
    BidStatus.DISPUTA_CONCLUIDA: {BidStatus.DISPUTA_CONCLUIDA},
}

# Statuses at or past the start of a dispute (config and log must exist).
DISPUTE_STARTED_STATUSES: frozenset[BidStatus] = frozenset(
    {
        BidStatus.EM_DISPUTA,
        BidStatus.DISPUTA_CONCLUIDA,
    }
)

# Statuses before a dispute starts (config and log must be absent).
PRE_DISPUTE_STATUSES: frozenset[BidStatus] = frozenset(
    {
        BidStatus.AGUARDANDO_ANALISE,
        BidStatus.EM_ANALISE,
        BidStatus.DOCUMENTACAO_CONCLUIDA,
        BidStatus.FALTA_DOCUMENTACAO,
        BidStatus.AGUARDANDO_DISPUTA,
    }
)


def status_label(status: BidStatus | str) -> str:
    """Human label for a status; unknown keys are returned unchanged."""
    try:
        return STATUS_LABELS[BidStatus(status)]
    except ValueError:
        return str(status)


def can_transition(current: BidStatus, target: BidStatus) -> bool:
    """True if the dispute room allows moving from current to target."""
    return target in DISPUTE_TRANSITIONS.get(current, set())
