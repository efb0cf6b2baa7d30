"""PDF documents generated when a dispute concludes."""

from .emitter import DocumentEmitter, PdfDocumentEmitter
from .minutes import render_session_minutes
from .proposal import render_final_proposal

__all__ = [
    "DocumentEmitter",
    "PdfDocumentEmitter",
    "render_final_proposal",
    "render_session_minutes",
]
