"""Dispute room: limit calculation, session controller, timer and outcome recording."""

from .items import add_proposal_item, remove_proposal_item
from .limits import compute_ceiling, parse_limit_value
from .outcome import OutcomeInput, OutcomeRecord, OutcomeValidation, validate_outcome
from .queue import dispute_queue
from .results import ActionResult
from .session import DisputeSession
from .timer import ElapsedTimeTracker, IntervalTicker, format_elapsed

__all__ = [
    "ActionResult",
    "DisputeSession",
    "ElapsedTimeTracker",
    "IntervalTicker",
    "OutcomeInput",
    "OutcomeRecord",
    "OutcomeValidation",
    "add_proposal_item",
    "compute_ceiling",
    "dispute_queue",
    "format_elapsed",
    "parse_limit_value",
    "remove_proposal_item",
    "validate_outcome",
]
