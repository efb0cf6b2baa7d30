"""Data models for bids, dispute records and company settings."""

from licitax.models.bid import (
    Bid,
    DisputeConfig,
    DisputeLog,
    DisputeMessage,
    Operator,
    ProposalItem,
    new_bid,
)
from licitax.models.company import CompanyConfig
from licitax.models.status import STATUS_LABELS, BidStatus, status_label

__all__ = [
    "Bid",
    "BidStatus",
    "CompanyConfig",
    "DisputeConfig",
    "DisputeLog",
    "DisputeMessage",
    "Operator",
    "ProposalItem",
    "STATUS_LABELS",
    "new_bid",
    "status_label",
]
