"""Declaration templates filled with company and bid data."""

from .llm import DeclarationResult, declaration_values, fill_declaration

__all__ = ["DeclarationResult", "declaration_values", "fill_declaration"]
