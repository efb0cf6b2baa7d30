"""Homologation and client fee debits."""

from .homologation import HomologationResult, build_debit, due_date, homologate, send_to_homologation

__all__ = ["HomologationResult", "build_debit", "due_date", "homologate", "send_to_homologation"]
