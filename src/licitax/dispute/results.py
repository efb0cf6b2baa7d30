"""Result type returned by dispute-room operations."""

from decimal import Decimal
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from licitax.models.bid import Bid

FailureKind = Literal["validation", "state", "not_found", "persistence"]


class ActionResult(BaseModel):
    """Outcome of a controller operation; failures carry a user-facing reason."""

    ok: bool
    kind: Optional[FailureKind] = Field(default=None, description="Failure category when ok is False")
    reason: Optional[str] = None
    bid: Optional[Bid] = None
    ceiling: Optional[Decimal] = None
    documents: list[Path] = Field(default_factory=list)
    documents_error: Optional[str] = None

    @classmethod
    def success(cls, bid: Optional[Bid] = None, **extra) -> "ActionResult":
        return cls(ok=True, bid=bid, **extra)

    @classmethod
    def failure(cls, kind: FailureKind, reason: str, bid: Optional[Bid] = None, **extra) -> "ActionResult":
        return cls(ok=False, kind=kind, reason=reason, bid=bid, **extra)
