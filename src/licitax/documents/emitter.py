"""Document emission for concluded disputes."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from licitax.declarations import fill_declaration
from licitax.models.bid import Bid, Operator, utcnow
from licitax.models.company import CompanyConfig

from .common import safe_filename
from .minutes import render_session_minutes
from .proposal import render_final_proposal

logger = logging.getLogger(__name__)


class DocumentEmitter(ABC):
    """Produces the session minutes and final proposal for a concluded dispute."""

    @abstractmethod
    def emit(
        self,
        bid: Bid,
        company: Optional[CompanyConfig],
        operator: Optional[Operator],
    ) -> list[Path]:
        """Render documents; returns the written paths. May raise."""
        pass


class PdfDocumentEmitter(DocumentEmitter):
    """Writes Ata_Disputa_<numero>.pdf and Proposta_Final_<numero>.pdf."""

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        *,
        clock: Optional[Callable] = None,
    ):
        self.output_dir = Path(output_dir or os.environ.get("LICITAX_OUTPUT_DIR") or "documentos")
        self._clock = clock or utcnow

    def emit(
        self,
        bid: Bid,
        company: Optional[CompanyConfig],
        operator: Optional[Operator],
    ) -> list[Path]:
        now = self._clock()
        stem = safe_filename(bid.numero)

        declaration: Optional[str] = None
        if company and company.declaracao_template:
            declaration = fill_declaration(company.declaracao_template, bid, company, now=now).text

        minutes = render_session_minutes(
            bid,
            self.output_dir / f"Ata_Disputa_{stem}.pdf",
            company=company,
            operator=operator,
            generated_at=now,
        )
        proposal = render_final_proposal(
            bid,
            self.output_dir / f"Proposta_Final_{stem}.pdf",
            company=company,
            operator=operator,
            declaration=declaration,
            generated_at=now,
        )
        logger.info("Dispute documents written for %s: %s, %s", bid.id, minutes, proposal)
        return [minutes, proposal]
