"""Dispute room queue: bids waiting for or in a dispute."""

from datetime import datetime, timezone

from licitax.models.bid import Bid
from licitax.models.status import BidStatus
from licitax.store.base import BidRepository

QUEUE_STATUSES = (BidStatus.AGUARDANDO_DISPUTA, BidStatus.EM_DISPUTA)

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def _sort_key(bid: Bid) -> tuple:
    awaiting = 0 if bid.status == BidStatus.AGUARDANDO_DISPUTA else 1
    start = bid.data_inicio or _LATEST
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return (awaiting, start)


def dispute_queue(repository: BidRepository) -> list[Bid]:
    """Bids awaiting a dispute first, then live ones; soonest start date first."""
    bids = [b for b in repository.list_all() if b.status in QUEUE_STATUSES]
    return sorted(bids, key=_sort_key)
