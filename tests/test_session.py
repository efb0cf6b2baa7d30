"""Tests for the dispute session controller."""

import threading
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

import pytest

from factories import FakeClock, FlakyRepository, make_bid
from licitax.dispute import DisputeSession, OutcomeInput
from licitax.documents import DocumentEmitter
from licitax.models.bid import DisputeLog, DisputeMessage, Operator
from licitax.models.status import BidStatus

OPERATOR = Operator(id="u1", display_name="Ana Souza", cpf="123.456.789-00")


def _won(unit: object = Decimal("4500"), **kwargs) -> OutcomeInput:
    return OutcomeInput(cliente_venceu=True, precos_unitarios={"i1": unit}, **kwargs)


def _started(repo: FlakyRepository, clock: FakeClock, **kwargs) -> DisputeSession:
    session = DisputeSession("LIC-1", repo, clock=clock, **kwargs)
    assert session.configure(limite_tipo="valor", limite_valor="45.000,00").ok
    assert session.start(OPERATOR).ok
    return session


class TestLoad:
    """Tests for load."""

    def test_unknown_bid_is_not_found(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Loading a missing bid returns a not_found result."""
        result = DisputeSession("LIC-404", repo, clock=clock).load()
        assert result.ok is False
        assert result.kind == "not_found"

    def test_operations_load_on_demand(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Operations on an unloaded missing bid report not_found too."""
        result = DisputeSession("LIC-404", repo, clock=clock).configure(limite_valor="100")
        assert result.kind == "not_found"

    def test_draft_starts_from_stored_reference(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """The draft reference value comes from the stored bid."""
        session = DisputeSession("LIC-1", repo, clock=clock)
        session.load()
        assert session.draft.valor_referencia_edital == Decimal("50000")
        assert session.draft.ceiling is None


class TestConfigure:
    """Tests for configure and the ceiling preview."""

    def test_percentual_ceiling(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """10% off a R$ 10.000,00 reference gives R$ 9.000,00."""
        session = DisputeSession("LIC-1", repo, clock=clock)
        result = session.configure(valor_referencia_edital=10000, limite_tipo="percentual", limite_valor="10%")
        assert result.ok
        assert result.ceiling == Decimal("9000")

    def test_partial_updates_keep_other_fields(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Changing only the limit type recomputes with the other draft values."""
        session = DisputeSession("LIC-1", repo, clock=clock)
        session.configure(limite_tipo="valor", limite_valor="20")
        result = session.configure(limite_tipo="percentual")
        assert result.ceiling == Decimal("40000")

    def test_invalid_limit_reports_validation(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A percentage above 100 leaves the ceiling undefined."""
        session = DisputeSession("LIC-1", repo, clock=clock)
        result = session.configure(limite_tipo="percentual", limite_valor="150")
        assert result.ok is False
        assert result.kind == "validation"
        assert result.ceiling is None

    def test_configure_does_not_persist(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """The draft lives in the session only."""
        DisputeSession("LIC-1", repo, clock=clock).configure(limite_tipo="valor", limite_valor="45000")
        assert repo.patch_calls == 0
        assert repo.get("LIC-1").disputa_config is None

    def test_configure_after_start_is_rejected(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Limits cannot change once the dispute is live."""
        session = _started(repo, clock)
        result = session.configure(limite_valor="1")
        assert result.kind == "state"


class TestStart:
    """Tests for start preconditions and persistence."""

    def test_start_without_items_fails(self, clock: FakeClock) -> None:
        """An empty proposal blocks the start."""
        repo = FlakyRepository([make_bid(itens_proposta=[])])
        session = DisputeSession("LIC-1", repo, clock=clock)
        session.configure(limite_tipo="valor", limite_valor="45000")
        result = session.start(OPERATOR)
        assert result.kind == "validation"
        assert "item" in result.reason
        assert repo.get("LIC-1").status == BidStatus.AGUARDANDO_DISPUTA

    def test_start_without_reference_fails(self, clock: FakeClock) -> None:
        """An undefined reference value blocks the start."""
        repo = FlakyRepository([make_bid(valor_referencia_edital=None)])
        session = DisputeSession("LIC-1", repo, clock=clock)
        session.configure(limite_tipo="valor", limite_valor="45000")
        result = session.start(OPERATOR)
        assert result.kind == "validation"
        assert "referência" in result.reason
        assert repo.patch_calls == 0

    def test_start_without_ceiling_fails(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """No limit configured means no ceiling and no start."""
        result = DisputeSession("LIC-1", repo, clock=clock).start(OPERATOR)
        assert result.kind == "validation"
        assert "Limite" in result.reason
        assert repo.patch_calls == 0

    def test_start_persists_config_and_start_time(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Status, config and iniciada_em are written and the timer starts at zero."""
        session = _started(repo, clock)
        stored = repo.get("LIC-1")
        assert stored.status == BidStatus.EM_DISPUTA
        assert stored.disputa_config.limite_tipo == "valor"
        assert stored.disputa_config.valor_calculado_ate_onde_pode_chegar == Decimal("45000")
        assert stored.disputa_log.iniciada_em == clock.now
        assert stored.disputa_log.mensagens == []
        assert stored.disputa_log.iniciada_por == "Ana Souza"
        assert session.tracker.running
        assert session.elapsed_display == "00:00:00"

    def test_start_keeps_prior_messages(self, clock: FakeClock) -> None:
        """Journal entries recorded before the start survive it."""
        note = DisputeMessage(id="m0", timestamp=clock.now, texto="Edital conferido", autor="Ana")
        repo = FlakyRepository([make_bid(disputa_log=DisputeLog(mensagens=[note]))])
        _started(repo, clock)
        assert [m.id for m in repo.get("LIC-1").disputa_log.mensagens] == ["m0"]

    def test_failed_write_leaves_bid_waiting(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A rejected patch keeps the status and does not start the timer."""
        session = DisputeSession("LIC-1", repo, clock=clock)
        session.configure(limite_tipo="valor", limite_valor="45000")
        repo.fail_patches = True
        result = session.start(OPERATOR)
        assert result.kind == "persistence"
        assert session.tracker.running is False
        assert session.bid.status == BidStatus.AGUARDANDO_DISPUTA
        assert repo.get("LIC-1").status == BidStatus.AGUARDANDO_DISPUTA

    def test_second_start_is_rejected(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A live dispute cannot be started again."""
        session = _started(repo, clock)
        assert session.start(OPERATOR).kind == "state"


class TestTimer:
    """Tests for elapsed time across reloads."""

    def test_reload_reconstructs_elapsed(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A session reopened 125s after the start shows 00:02:05."""
        _started(repo, clock).close()
        clock.advance(125)
        reopened = DisputeSession("LIC-1", repo, clock=clock)
        reopened.load()
        assert reopened.elapsed_display == "00:02:05"

    def test_ticker_calls_back_and_close_stops_it(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """The display callback fires while live and close() stops it without writes."""
        ticked = threading.Event()
        session = _started(repo, clock, on_tick=lambda seconds: ticked.set(), tick_interval=0.01)
        assert ticked.wait(2)
        calls = repo.patch_calls
        session.close()
        assert session._ticker.running is False
        assert repo.patch_calls == calls
        assert repo.get("LIC-1").status == BidStatus.EM_DISPUTA

    def test_context_manager_closes(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Leaving the with-block stops the ticker."""
        with _started(repo, clock, on_tick=lambda seconds: None, tick_interval=0.01) as session:
            assert session._ticker.running
        assert session._ticker.running is False


class TestMessages:
    """Tests for append_message."""

    def test_blank_message_rejected(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Whitespace-only text is not recorded."""
        session = _started(repo, clock)
        result = session.append_message("   ", OPERATOR)
        assert result.kind == "validation"
        assert repo.get("LIC-1").disputa_log.mensagens == []

    def test_message_is_stamped_and_persisted(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Messages carry the operator name and clock timestamp."""
        session = _started(repo, clock)
        clock.advance(30)
        assert session.append_message("  Lance de R$ 46.000,00  ", OPERATOR).ok
        (msg,) = repo.get("LIC-1").disputa_log.mensagens
        assert msg.texto == "Lance de R$ 46.000,00"
        assert msg.autor == "Ana Souza"
        assert msg.timestamp == clock.now

    def test_message_before_start_rejected(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """The journal only accepts entries during the dispute."""
        result = DisputeSession("LIC-1", repo, clock=clock).append_message("oi", OPERATOR)
        assert result.kind == "state"


class TestFinalize:
    """Tests for begin/commit/cancel finalize."""

    def test_end_to_end_scenario(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """R$ 50.000 reference, R$ 45.000 limit, 10 units at R$ 4.500 gives R$ 45.000."""
        session = _started(repo, clock)
        clock.advance(3725)
        result = session.finalize(_won(observacoes="  Entrega em 30 dias "), OPERATOR)
        assert result.ok
        stored = repo.get("LIC-1")
        assert stored.status == BidStatus.DISPUTA_CONCLUIDA
        assert stored.disputa_log.cliente_venceu is True
        assert stored.disputa_log.posicao_cliente is None
        assert stored.disputa_log.valor_final_proposta_cliente == Decimal("45000")
        assert stored.disputa_log.finalizada_em == clock.now
        assert stored.disputa_log.duracao == "01:02:05"
        assert stored.itens_proposta[0].valor_unitario_final_cliente == Decimal("4500")
        assert stored.itens_proposta[0].valor_total_final_cliente == Decimal("45000")
        assert stored.observacoes_proposta_final == "Entrega em 30 dias"

    def test_timer_frozen_after_finalize(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Elapsed stops advancing once concluded."""
        session = _started(repo, clock)
        clock.advance(90)
        session.finalize(_won(), OPERATOR)
        clock.advance(600)
        assert session.elapsed_seconds == 90
        assert session.tracker.running is False

    @pytest.mark.parametrize("position", [None, "", "0", 0, "-1", -1, "2.5"])
    def test_lost_with_invalid_position_fails(
        self, repo: FlakyRepository, clock: FakeClock, position: object
    ) -> None:
        """A loss needs a position that is a whole number >= 1."""
        session = _started(repo, clock)
        outcome = OutcomeInput(cliente_venceu=False, posicao_cliente=position, precos_unitarios={"i1": 4500})
        result = session.finalize(outcome, OPERATOR)
        assert result.kind == "validation"
        assert repo.get("LIC-1").status == BidStatus.EM_DISPUTA

    def test_rejected_finalize_keeps_timer_running(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A one-shot finalize that fails validation leaves the clock advancing."""
        session = _started(repo, clock)
        clock.advance(10)
        result = session.finalize(OutcomeInput(cliente_venceu=False, posicao_cliente=""), OPERATOR)
        assert result.kind == "validation"
        clock.advance(60)
        assert session.elapsed_seconds == 70
        assert session.tracker.running

    def test_rejected_commit_without_begin_keeps_timer_running(
        self, repo: FlakyRepository, clock: FakeClock
    ) -> None:
        """commit_finalize without an open step restores the timer on bad input."""
        session = _started(repo, clock)
        clock.advance(10)
        assert session.commit_finalize(_won(unit="abc"), OPERATOR).kind == "validation"
        clock.advance(5)
        assert session.elapsed_seconds == 15

    def test_lost_with_position_three_succeeds(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Position 3 is recorded for a lost dispute."""
        session = _started(repo, clock)
        outcome = OutcomeInput(cliente_venceu=False, posicao_cliente="3", precos_unitarios={"i1": 4800})
        assert session.finalize(outcome, OPERATOR).ok
        assert repo.get("LIC-1").disputa_log.posicao_cliente == 3

    def test_validation_failure_writes_nothing(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A missing price stops the commit before any write."""
        session = _started(repo, clock)
        calls = repo.patch_calls
        result = session.finalize(OutcomeInput(cliente_venceu=True), OPERATOR)
        assert result.kind == "validation"
        assert repo.patch_calls == calls

    def test_cancel_resumes_timer(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Dismissing the outcome step restarts the timer from the stored start."""
        session = _started(repo, clock)
        clock.advance(40)
        session.begin_finalize()
        assert session.tracker.running is False
        session.cancel_finalize()
        clock.advance(20)
        assert session.tracker.running
        assert session.elapsed_seconds == 60

    def test_failed_write_restarts_timer(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A rejected finalize keeps the dispute live and the timer running."""
        session = _started(repo, clock)
        clock.advance(60)
        repo.fail_patches = True
        result = session.finalize(_won(), OPERATOR)
        assert result.kind == "persistence"
        assert session.bid.status == BidStatus.EM_DISPUTA
        assert repo.get("LIC-1").status == BidStatus.EM_DISPUTA
        assert session.tracker.running
        clock.advance(5)
        assert session.elapsed_seconds == 65

    def test_documents_are_emitted(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """The emitter receives the concluded bid and its paths are returned."""
        emitter = Mock(spec=DocumentEmitter)
        emitter.emit.return_value = [Path("Ata.pdf"), Path("Proposta.pdf")]
        session = _started(repo, clock, emitter=emitter)
        result = session.finalize(_won(), OPERATOR)
        assert result.documents == [Path("Ata.pdf"), Path("Proposta.pdf")]
        bid, company, operator = emitter.emit.call_args.args
        assert bid.status == BidStatus.DISPUTA_CONCLUIDA
        assert operator == OPERATOR

    def test_document_failure_does_not_roll_back(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """An emitter error is reported but the dispute stays concluded."""
        emitter = Mock(spec=DocumentEmitter)
        emitter.emit.side_effect = OSError("disk full")
        session = _started(repo, clock, emitter=emitter)
        result = session.finalize(_won(), OPERATOR)
        assert result.ok
        assert result.documents == []
        assert result.documents_error == "disk full"
        assert repo.get("LIC-1").status == BidStatus.DISPUTA_CONCLUIDA


class TestAmend:
    """Tests for amending a concluded dispute."""

    def test_amend_preserves_timing(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Start, end and duration are kept; the new total replaces the old."""
        session = _started(repo, clock)
        clock.advance(300)
        session.finalize(_won(), OPERATOR)
        before = repo.get("LIC-1").disputa_log
        clock.advance(3600)
        result = session.amend_outcome(_won("4.400,00"), OPERATOR)
        assert result.ok
        after = repo.get("LIC-1").disputa_log
        assert after.iniciada_em == before.iniciada_em
        assert after.finalizada_em == before.finalizada_em
        assert after.duracao == "00:05:00"
        assert after.valor_final_proposta_cliente == Decimal("44000")
        assert session.elapsed_seconds == 300

    def test_amend_reproduces_total(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Re-recording the same prices gives the same grand total."""
        session = _started(repo, clock)
        session.finalize(_won(), OPERATOR)
        first = repo.get("LIC-1").disputa_log.valor_final_proposta_cliente
        session.amend_outcome(_won(), OPERATOR)
        assert repo.get("LIC-1").disputa_log.valor_final_proposta_cliente == first == Decimal("45000")

    def test_amend_re_emits_documents(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Documents are produced again for the amended outcome."""
        emitter = Mock(spec=DocumentEmitter)
        emitter.emit.return_value = []
        session = _started(repo, clock, emitter=emitter)
        session.finalize(_won(), OPERATOR)
        session.amend_outcome(_won(), OPERATOR)
        assert emitter.emit.call_count == 2

    def test_commit_on_concluded_amends(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """begin/commit on a concluded dispute takes the amend path."""
        session = _started(repo, clock)
        clock.advance(10)
        session.finalize(_won(), OPERATOR)
        clock.advance(50)
        assert session.begin_finalize().ok
        result = session.commit_finalize(_won(4000), OPERATOR)
        assert result.ok
        log = repo.get("LIC-1").disputa_log
        assert log.duracao == "00:00:10"
        assert log.valor_final_proposta_cliente == Decimal("40000")

    def test_amend_live_dispute_rejected(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """Only concluded disputes can be amended."""
        session = _started(repo, clock)
        assert session.amend_outcome(_won(), OPERATOR).kind == "state"

    def test_amend_failed_write_keeps_prior_outcome(self, repo: FlakyRepository, clock: FakeClock) -> None:
        """A rejected amend leaves the first outcome in place."""
        session = _started(repo, clock)
        session.finalize(_won(), OPERATOR)
        repo.fail_patches = True
        assert session.amend_outcome(_won(1), OPERATOR).kind == "persistence"
        assert repo.get("LIC-1").disputa_log.valor_final_proposta_cliente == Decimal("45000")
        assert session.bid.disputa_log.valor_final_proposta_cliente == Decimal("45000")
