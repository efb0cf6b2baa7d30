"""Local storage for bids and debits."""

from licitax.store.base import BidRepository, InMemoryBidRepository
from licitax.store.debit_store import Debit, DebitStore
from licitax.store.sqlite_store import SqliteBidRepository

__all__ = [
    "BidRepository",
    "Debit",
    "DebitStore",
    "InMemoryBidRepository",
    "SqliteBidRepository",
]
