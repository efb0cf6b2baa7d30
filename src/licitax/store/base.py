"""Bid repository interface and in-memory implementation."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from licitax.models.bid import Bid

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Dump pydantic models (also inside lists) so the merged dict re-validates."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def merge_patch(existing: Bid, changes: dict[str, Any]) -> Bid:
    """
    Shallow-merge top-level fields into a bid and re-validate.
    Raises ValueError for unknown fields or an inconsistent result.
    """
    unknown = set(changes) - set(Bid.model_fields)
    if unknown:
        raise ValueError(f"Unknown bid fields: {sorted(unknown)}")
    if "id" in changes and changes["id"] != existing.id:
        raise ValueError("Bid id cannot be patched")
    data = existing.model_dump()
    data.update({k: _plain(v) for k, v in changes.items()})
    return Bid.model_validate(data)


class BidRepository(ABC):
    """
    Storage for bid records keyed by protocol id.
    patch() is all-or-nothing: it returns False and leaves the record
    untouched when the write cannot be applied.
    """

    @abstractmethod
    def get(self, bid_id: str) -> Optional[Bid]:
        """Return the bid or None if not found."""
        pass

    @abstractmethod
    def patch(self, bid_id: str, changes: dict[str, Any]) -> bool:
        """Merge changes into the stored bid. Returns True on success."""
        pass

    @abstractmethod
    def add(self, bid: Bid) -> Bid:
        """Insert a new bid. Raises ValueError if the id already exists."""
        pass

    @abstractmethod
    def list_all(self) -> list[Bid]:
        """Return all bids."""
        pass


class InMemoryBidRepository(BidRepository):
    """Dict-backed repository, used by tests and dry runs."""

    def __init__(self, bids: Optional[list[Bid]] = None):
        self._bids: dict[str, Bid] = {}
        for bid in bids or []:
            self.add(bid)

    def get(self, bid_id: str) -> Optional[Bid]:
        bid = self._bids.get(bid_id)
        return bid.model_copy(deep=True) if bid else None

    def patch(self, bid_id: str, changes: dict[str, Any]) -> bool:
        existing = self._bids.get(bid_id)
        if existing is None:
            logger.warning("Bid patch failed: %s not found", bid_id)
            return False
        try:
            self._bids[bid_id] = merge_patch(existing, changes)
        except (ValueError, ValidationError) as e:
            logger.warning("Bid patch rejected for %s: %s", bid_id, e)
            return False
        return True

    def add(self, bid: Bid) -> Bid:
        if bid.id in self._bids:
            raise ValueError(f"Bid {bid.id} already exists")
        self._bids[bid.id] = bid.model_copy(deep=True)
        return bid

    def list_all(self) -> list[Bid]:
        return [b.model_copy(deep=True) for b in self._bids.values()]
