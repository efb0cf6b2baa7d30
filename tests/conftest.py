"""Pytest fixtures for licitax tests."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from factories import FakeClock, FlakyRepository, make_bid


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2024-05-10 14:00 UTC."""
    return FakeClock(datetime(2024, 5, 10, 14, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def repo() -> FlakyRepository:
    """Repository holding LIC-1 awaiting dispute (reference R$ 50.000,00, 10 units)."""
    return FlakyRepository([make_bid()])


@pytest.fixture
def temp_db() -> Path:
    """Temporary database path for isolated tests."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)
    yield path
    path.unlink(missing_ok=True)


@pytest.fixture(autouse=True)
def _no_llm_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    """Declarations use the placeholder stub unless a test opts in."""
    monkeypatch.delenv("LICITAX_LLM_PROVIDER", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
