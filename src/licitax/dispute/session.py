"""Dispute room session: configure, start, journal, finalize, amend."""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Callable, Literal, Optional

from licitax.documents.emitter import DocumentEmitter
from licitax.models.bid import Bid, DisputeConfig, DisputeLog, DisputeMessage, Operator, utcnow
from licitax.models.company import CompanyConfig
from licitax.models.status import BidStatus, can_transition, status_label
from licitax.money import as_decimal
from licitax.store.base import BidRepository, merge_patch

from .limits import compute_ceiling, parse_limit_value
from .outcome import OutcomeInput, OutcomeRecord, validate_outcome
from .results import ActionResult
from .timer import Clock, ElapsedTimeTracker, IntervalTicker, format_elapsed, seconds_between

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class DisputeDraft:
    """Limit inputs being edited before the dispute starts."""

    valor_referencia_edital: Optional[Decimal] = None
    limite_tipo: Optional[str] = "valor"
    limite_valor: Optional[Decimal] = None
    ceiling: Optional[Decimal] = None

    def recompute(self) -> Optional[Decimal]:
        self.ceiling = compute_ceiling(self.valor_referencia_edital, self.limite_tipo, self.limite_valor)
        return self.ceiling

    @classmethod
    def from_bid(cls, bid: Bid) -> "DisputeDraft":
        draft = cls(valor_referencia_edital=bid.valor_referencia_edital)
        if bid.disputa_config:
            draft.limite_tipo = bid.disputa_config.limite_tipo
            draft.limite_valor = bid.disputa_config.limite_valor
        draft.recompute()
        return draft


class DisputeSession:
    """
    One operator's view of a bid's dispute room.

    Every operation returns an ActionResult; validation and persistence
    problems are reported there, never raised. Local state (self.bid,
    the tracker) only advances after the repository confirms the write.
    """

    def __init__(
        self,
        bid_id: str,
        repository: BidRepository,
        *,
        clock: Optional[Clock] = None,
        emitter: Optional[DocumentEmitter] = None,
        company: Optional[CompanyConfig] = None,
        on_tick: Optional[Callable[[int], None]] = None,
        tick_interval: float = 1.0,
    ):
        self.bid_id = bid_id
        self._repository = repository
        self._clock = clock or utcnow
        self._emitter = emitter
        self._company = company
        self._on_tick = on_tick

        self.bid: Optional[Bid] = None
        self.draft = DisputeDraft()
        self.tracker = ElapsedTimeTracker(clock=self._clock)
        self._ticker = IntervalTicker(self._tick, tick_interval) if on_tick else None
        self._finalize_mode: Optional[Literal["finalize", "amend"]] = None
        self._stopped_for_finalize = False

    def __enter__(self) -> "DisputeSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- lifecycle ---

    def load(self) -> ActionResult:
        """Read the bid and rebuild the timer from its persisted timestamps."""
        bid = self._repository.get(self.bid_id)
        if bid is None:
            return ActionResult.failure("not_found", "Licitação não encontrada.")
        self.bid = bid
        self.draft = DisputeDraft.from_bid(bid)
        self.tracker = ElapsedTimeTracker.resume(bid.disputa_log, bid.status, clock=self._clock)
        self._finalize_mode = None
        self._stopped_for_finalize = False
        if bid.status == BidStatus.EM_DISPUTA:
            self._start_ticker()
        else:
            self._stop_ticker()
        return ActionResult.success(bid, ceiling=self.draft.ceiling)

    def close(self) -> None:
        """Stop the local ticker. Persisted state is left as is."""
        self._stop_ticker()

    @property
    def elapsed_seconds(self) -> int:
        return self.tracker.tick()

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.tracker.tick())

    # --- configure / start ---

    def configure(
        self,
        valor_referencia_edital: object = _UNSET,
        limite_tipo: object = _UNSET,
        limite_valor: object = _UNSET,
    ) -> ActionResult:
        """
        Update the draft limit inputs and recompute the ceiling.
        Arguments left out keep their current draft value; raw text is
        parsed as BRL (or percentage for "percentual").
        """
        bid, failure = self._loaded()
        if failure:
            return failure
        if bid.status != BidStatus.AGUARDANDO_DISPUTA:
            return self._wrong_state(bid, "configurar a disputa")

        if valor_referencia_edital is not _UNSET:
            self.draft.valor_referencia_edital = as_decimal(valor_referencia_edital)
        if limite_tipo is not _UNSET:
            self.draft.limite_tipo = limite_tipo if isinstance(limite_tipo, str) else None
        if limite_valor is not _UNSET:
            self.draft.limite_valor = parse_limit_value(self.draft.limite_tipo or "", limite_valor)
        self.draft.recompute()

        reason = self._start_blocker(bid)
        if reason:
            return ActionResult.failure("validation", reason, bid, ceiling=self.draft.ceiling)
        return ActionResult.success(bid, ceiling=self.draft.ceiling)

    def _start_blocker(self, bid: Bid) -> Optional[str]:
        """First reason the dispute cannot start with the current draft, if any."""
        reference = self.draft.valor_referencia_edital
        if reference is None or reference < 0:
            return "Valor de referência do edital é inválido."
        if self.draft.limite_tipo not in ("valor", "percentual"):
            return "Tipo de limite deve ser 'valor' ou 'percentual'."
        if self.draft.ceiling is None:
            return "Limite do cliente (valor ou percentual) é inválido ou não definido."
        if not bid.itens_proposta:
            return "Cadastre ao menos um item da proposta antes de iniciar a disputa."
        return None

    def start(self, operator: Optional[Operator] = None) -> ActionResult:
        """Persist the config and start time, then start the timer at zero."""
        bid, failure = self._loaded()
        if failure:
            return failure
        if bid.status != BidStatus.AGUARDANDO_DISPUTA:
            return self._wrong_state(bid, "iniciar a disputa")
        reason = self._start_blocker(bid)
        if reason:
            return ActionResult.failure("validation", reason, bid, ceiling=self.draft.ceiling)

        now = self._clock()
        prior = bid.disputa_log.mensagens if bid.disputa_log else []
        changes = {
            "status": BidStatus.EM_DISPUTA,
            "valor_referencia_edital": self.draft.valor_referencia_edital,
            "disputa_config": DisputeConfig(
                limite_tipo=self.draft.limite_tipo,
                limite_valor=self.draft.limite_valor,
                valor_calculado_ate_onde_pode_chegar=self.draft.ceiling,
            ),
            "disputa_log": DisputeLog(
                iniciada_em=now,
                iniciada_por=operator.display_name if operator else None,
                mensagens=list(prior),
            ),
        }
        if not self._repository.patch(bid.id, changes):
            return ActionResult.failure(
                "persistence", "Não foi possível iniciar a disputa. Tente novamente.", bid
            )

        self.bid = merge_patch(bid, changes)
        self.tracker.start(now)
        self._start_ticker()
        logger.info(
            "Dispute started for %s by %s (ceiling %s)",
            bid.id,
            operator.display_name if operator else "unknown",
            self.draft.ceiling,
        )
        return ActionResult.success(self.bid, ceiling=self.draft.ceiling)

    # --- journal ---

    def append_message(self, texto: str, operator: Operator) -> ActionResult:
        """Append an operator message to the dispute journal."""
        bid, failure = self._loaded()
        if failure:
            return failure
        if bid.status != BidStatus.EM_DISPUTA:
            return self._wrong_state(bid, "registrar mensagens")
        text = (texto or "").strip()
        if not text:
            return ActionResult.failure("validation", "A mensagem não pode ser vazia.", bid)

        message = DisputeMessage(
            id=uuid.uuid4().hex,
            timestamp=self._clock(),
            texto=text,
            autor=operator.display_name,
        )
        log = bid.disputa_log.model_copy(update={"mensagens": [*bid.disputa_log.mensagens, message]})
        changes = {"disputa_log": log}
        if not self._repository.patch(bid.id, changes):
            return ActionResult.failure("persistence", "Não foi possível salvar a mensagem.", bid)
        self.bid = merge_patch(bid, changes)
        return ActionResult.success(self.bid)

    # --- finalize / amend ---

    def begin_finalize(self) -> ActionResult:
        """
        Open the outcome step. A live dispute stops its timer here; a
        concluded one enters amend mode and the timer is not touched.
        """
        bid, failure = self._loaded()
        if failure:
            return failure
        if bid.status == BidStatus.EM_DISPUTA:
            if self.tracker.running:
                self.tracker.stop()
                self._stopped_for_finalize = True
            self._stop_ticker()
            self._finalize_mode = "finalize"
            return ActionResult.success(bid)
        if bid.status == BidStatus.DISPUTA_CONCLUIDA:
            self._finalize_mode = "amend"
            return ActionResult.success(bid)
        return self._wrong_state(bid, "finalizar a disputa")

    def cancel_finalize(self) -> ActionResult:
        """Dismiss the outcome step; a live dispute resumes its timer."""
        bid, failure = self._loaded()
        if failure:
            return failure
        self._finalize_mode = None
        self._resume_after_failed_finalize(bid)
        return ActionResult.success(bid)

    def commit_finalize(self, outcome: OutcomeInput, operator: Optional[Operator] = None) -> ActionResult:
        """Validate the outcome and conclude the dispute (or amend a concluded one)."""
        bid, failure = self._loaded()
        if failure:
            return failure
        if bid.status == BidStatus.DISPUTA_CONCLUIDA:
            return self.amend_outcome(outcome, operator)
        if bid.status != BidStatus.EM_DISPUTA:
            return self._wrong_state(bid, "finalizar a disputa")
        opened_here = self._finalize_mode != "finalize"
        if opened_here:
            self.begin_finalize()

        validation = validate_outcome(bid, outcome)
        if not validation.ok:
            if opened_here:
                self._finalize_mode = None
                self._resume_after_failed_finalize(bid)
            return ActionResult.failure("validation", validation.reason, bid)

        now = self._clock()
        started = bid.disputa_log.iniciada_em
        log_update = {
            "finalizada_em": now,
            "duracao": format_elapsed(seconds_between(started, now)),
        }
        result = self._commit(bid, validation.record, log_update, operator)
        if not result.ok:
            self._resume_after_failed_finalize(bid)
            return result

        self.tracker.freeze(started, now)
        self._stopped_for_finalize = False
        self._finalize_mode = None
        logger.info("Dispute concluded for %s (venceu=%s)", bid.id, validation.record.cliente_venceu)
        return result

    def finalize(self, outcome: OutcomeInput, operator: Optional[Operator] = None) -> ActionResult:
        """begin_finalize + commit_finalize in one call."""
        opened = self.begin_finalize()
        if not opened.ok:
            return opened
        result = self.commit_finalize(outcome, operator)
        if not result.ok and self._finalize_mode == "finalize":
            self.cancel_finalize()
        return result

    def amend_outcome(self, outcome: OutcomeInput, operator: Optional[Operator] = None) -> ActionResult:
        """
        Re-record the outcome of a concluded dispute. Start/end timestamps
        and duration are preserved; the timer is never touched.
        """
        bid, failure = self._loaded()
        if failure:
            return failure
        if bid.status != BidStatus.DISPUTA_CONCLUIDA:
            return self._wrong_state(bid, "alterar o resultado")
        validation = validate_outcome(bid, outcome)
        if not validation.ok:
            return ActionResult.failure("validation", validation.reason, bid)
        result = self._commit(bid, validation.record, {}, operator)
        if result.ok:
            self._finalize_mode = None
            logger.info("Dispute outcome amended for %s", bid.id)
        return result

    def _commit(
        self,
        bid: Bid,
        record: OutcomeRecord,
        log_update: dict,
        operator: Optional[Operator],
    ) -> ActionResult:
        log = bid.disputa_log.model_copy(
            update={
                **log_update,
                "cliente_venceu": record.cliente_venceu,
                "posicao_cliente": record.posicao_cliente,
                "itens_proposta_final_cliente": record.itens,
                "valor_final_proposta_cliente": record.valor_final,
            }
        )
        changes = {
            "status": BidStatus.DISPUTA_CONCLUIDA,
            "disputa_log": log,
            "itens_proposta": record.itens,
            "observacoes_proposta_final": record.observacoes,
        }
        if not can_transition(bid.status, BidStatus.DISPUTA_CONCLUIDA):
            return self._wrong_state(bid, "finalizar a disputa")
        if not self._repository.patch(bid.id, changes):
            return ActionResult.failure(
                "persistence", "Não foi possível finalizar a disputa. Tente novamente.", bid
            )
        self.bid = merge_patch(bid, changes)
        documents, documents_error = self._emit_documents(operator)
        return ActionResult.success(self.bid, documents=documents, documents_error=documents_error)

    def _emit_documents(self, operator: Optional[Operator]) -> tuple[list[Path], Optional[str]]:
        """Run the document emitter; its failure never undoes the commit."""
        if self._emitter is None:
            return [], None
        try:
            return self._emitter.emit(self.bid, self._company, operator), None
        except Exception as e:
            logger.warning("Document generation failed for %s: %s", self.bid_id, e)
            return [], str(e)

    # --- helpers ---

    def _loaded(self) -> tuple[Optional[Bid], Optional[ActionResult]]:
        if self.bid is None:
            result = self.load()
            if not result.ok:
                return None, result
        return self.bid, None

    def _wrong_state(self, bid: Bid, action: str) -> ActionResult:
        return ActionResult.failure(
            "state",
            f"Não é possível {action} com a licitação em '{status_label(bid.status)}'.",
            bid,
        )

    def _resume_after_failed_finalize(self, bid: Bid) -> None:
        if self._stopped_for_finalize and bid.status == BidStatus.EM_DISPUTA:
            self.tracker.start(bid.disputa_log.iniciada_em)
            self._start_ticker()
        self._stopped_for_finalize = False

    def _tick(self) -> None:
        if self._on_tick:
            self._on_tick(self.tracker.tick())

    def _start_ticker(self) -> None:
        if self._ticker:
            self._ticker.start()

    def _stop_ticker(self) -> None:
        if self._ticker:
            self._ticker.stop()
