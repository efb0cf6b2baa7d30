"""Tests for homologation and the debit store."""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from factories import FakeClock, FlakyRepository, make_bid, make_concluded_bid
from licitax.billing import build_debit, due_date, homologate, send_to_homologation
from licitax.models.company import CompanyConfig
from licitax.models.status import BidStatus
from licitax.store import DebitStore


@pytest.fixture
def debits(temp_db: Path) -> DebitStore:
    """DebitStore with temporary database."""
    return DebitStore(temp_db)


class TestDueDate:
    """Tests for due_date."""

    def test_next_month_on_default_day(self) -> None:
        """Due on the configured day of the following month."""
        assert due_date(datetime(2024, 5, 10, 14, 0), 15) == datetime(2024, 6, 15, 14, 0)

    def test_year_rollover(self) -> None:
        """December rolls into January of the next year."""
        assert due_date(datetime(2024, 12, 20), 15) == datetime(2025, 1, 15)

    def test_clamped_to_month_length(self) -> None:
        """Day 31 falls back to the last day of a short month."""
        assert due_date(datetime(2024, 1, 31), 31) == datetime(2024, 2, 29)
        assert due_date(datetime(2023, 1, 5), 30) == datetime(2023, 2, 28)


class TestSendToHomologation:
    """Tests for send_to_homologation."""

    def test_won_dispute_moves_on(self, clock: FakeClock) -> None:
        """A won, concluded dispute goes to EM_HOMOLOGACAO."""
        repo = FlakyRepository([make_concluded_bid(clock.now)])
        assert send_to_homologation(repo, "LIC-1").ok
        assert repo.get("LIC-1").status == BidStatus.EM_HOMOLOGACAO

    def test_lost_dispute_rejected(self, clock: FakeClock) -> None:
        """Lost disputes are not homologated for the client."""
        repo = FlakyRepository([make_concluded_bid(clock.now, venceu=False)])
        assert send_to_homologation(repo, "LIC-1").kind == "state"

    def test_lost_dispute_not_homologated(self, clock: FakeClock, debits: DebitStore) -> None:
        """homologate refuses a lost dispute and bills nothing."""
        repo = FlakyRepository([make_concluded_bid(clock.now, venceu=False)])
        result = homologate(repo, debits, "LIC-1", clock=clock)
        assert result.kind == "state"
        assert repo.get("LIC-1").status == BidStatus.DISPUTA_CONCLUIDA
        assert debits.get("LIC-1") is None

    def test_unknown_bid(self, repo: FlakyRepository) -> None:
        """Missing bids are not_found."""
        assert send_to_homologation(repo, "LIC-404").kind == "not_found"


class TestHomologate:
    """Tests for homologate."""

    def test_creates_pending_debit(self, clock: FakeClock, debits: DebitStore) -> None:
        """First homologation stamps the date and bills valor_cobrado."""
        repo = FlakyRepository([make_concluded_bid(clock.now)])
        company = CompanyConfig(dia_vencimento_padrao=5)
        result = homologate(repo, debits, "LIC-1", company=company, clock=clock)
        assert result.ok
        stored = repo.get("LIC-1")
        assert stored.status == BidStatus.PROCESSO_HOMOLOGADO
        assert stored.data_homologacao == clock.now
        debit = debits.get("LIC-1")
        assert debit == result.debit
        assert debit.tipo == "LICITACAO"
        assert debit.status == "PENDENTE"
        assert debit.valor == Decimal("1500")
        assert debit.descricao == "Serviços Licitação PE 001/2024"
        assert debit.data_vencimento == datetime(2024, 6, 5, 14, 0, tzinfo=timezone.utc)

    def test_second_homologation_is_noop(self, clock: FakeClock, debits: DebitStore) -> None:
        """Re-homologating keeps the original date and debit."""
        repo = FlakyRepository([make_concluded_bid(clock.now)])
        first = homologate(repo, debits, "LIC-1", clock=clock)
        debits.update_status("LIC-1", "PAGO")
        clock.advance(86400)
        second = homologate(repo, debits, "LIC-1", clock=clock)
        assert second.ok
        assert second.debit.status == "PAGO"
        assert repo.get("LIC-1").data_homologacao == first.bid.data_homologacao
        assert len(debits.list_all()) == 1

    def test_not_homologable_before_dispute(self, repo: FlakyRepository, debits: DebitStore) -> None:
        """Bids that never reached a dispute result cannot be homologated."""
        result = homologate(repo, debits, "LIC-1")
        assert result.kind == "state"
        assert debits.list_all() == []

    def test_failed_write_creates_no_debit(self, clock: FakeClock, debits: DebitStore) -> None:
        """No debit without the status change."""
        repo = FlakyRepository([make_concluded_bid(clock.now)])
        repo.fail_patches = True
        assert homologate(repo, debits, "LIC-1", clock=clock).kind == "persistence"
        assert debits.get("LIC-1") is None


class TestDebitStore:
    """Tests for DebitStore."""

    def test_list_newest_first(self, clock: FakeClock, debits: DebitStore) -> None:
        """Debits are listed by reference date, most recent first."""
        debits.upsert(build_debit(make_bid(id="LIC-old"), clock.now))
        debits.upsert(build_debit(make_bid(id="LIC-new"), clock.advance(3600)))
        assert [d.id for d in debits.list_all()] == ["LIC-new", "LIC-old"]

    def test_update_status(self, clock: FakeClock, debits: DebitStore) -> None:
        """Known statuses update; unknown debits return False."""
        debits.upsert(build_debit(make_bid(), clock.now))
        assert debits.update_status("LIC-1", "ENVIADO_FINANCEIRO") is True
        assert debits.get("LIC-1").status == "ENVIADO_FINANCEIRO"
        assert debits.update_status("LIC-404", "PAGO") is False

    def test_update_status_rejects_unknown_value(self, clock: FakeClock, debits: DebitStore) -> None:
        """Only the finance statuses are allowed."""
        debits.upsert(build_debit(make_bid(), clock.now))
        with pytest.raises(ValueError):
            debits.update_status("LIC-1", "CANCELADO")

    def test_delete_pending_only(self, clock: FakeClock, debits: DebitStore) -> None:
        """Paid debits survive deletion of their bid."""
        debits.upsert(build_debit(make_bid(id="LIC-1"), clock.now))
        debits.upsert(build_debit(make_bid(id="LIC-2"), clock.now))
        debits.update_status("LIC-2", "PAGO")
        assert debits.delete_pending("LIC-1") is True
        assert debits.delete_pending("LIC-2") is False
        assert [d.id for d in debits.list_all()] == ["LIC-2"]
