"""Proposal item editor used before a dispute starts."""

import logging

from licitax.models.bid import ProposalItem
from licitax.models.status import BidStatus, status_label
from licitax.store.base import BidRepository

from .results import ActionResult

logger = logging.getLogger(__name__)


def _editable(repository: BidRepository, bid_id: str):
    bid = repository.get(bid_id)
    if bid is None:
        return None, ActionResult.failure("not_found", "Licitação não encontrada.")
    if bid.status != BidStatus.AGUARDANDO_DISPUTA:
        return bid, ActionResult.failure(
            "state",
            f"Itens só podem ser alterados em 'Aguardando Disputa' (atual: '{status_label(bid.status)}').",
            bid,
        )
    return bid, None


def add_proposal_item(repository: BidRepository, bid_id: str, item: ProposalItem) -> ActionResult:
    """
    Append an item to the bid's proposal.
    Raises ValueError if an item with the same id already exists.
    """
    bid, failure = _editable(repository, bid_id)
    if failure:
        return failure
    if bid.item(item.id) is not None:
        raise ValueError(f"Item {item.id} already exists on bid {bid_id}")
    items = [*bid.itens_proposta, item]
    if not repository.patch(bid_id, {"itens_proposta": items}):
        return ActionResult.failure("persistence", "Não foi possível salvar o item.", bid)
    logger.info("Item %s added to %s", item.id, bid_id)
    return ActionResult.success(repository.get(bid_id))


def remove_proposal_item(repository: BidRepository, bid_id: str, item_id: str) -> ActionResult:
    """Remove an item by id. Raises ValueError if the bid has no such item."""
    bid, failure = _editable(repository, bid_id)
    if failure:
        return failure
    if bid.item(item_id) is None:
        raise ValueError(f"Item {item_id} not found on bid {bid_id}")
    items = [it for it in bid.itens_proposta if it.id != item_id]
    if not repository.patch(bid_id, {"itens_proposta": items}):
        return ActionResult.failure("persistence", "Não foi possível remover o item.", bid)
    logger.info("Item %s removed from %s", item_id, bid_id)
    return ActionResult.success(repository.get(bid_id))
