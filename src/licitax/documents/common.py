"""Shared layout helpers for generated PDFs."""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, Spacer

from licitax.models.company import CompanyConfig

BRAND = colors.HexColor("#1F3A5F")


def safe_filename(numero: str) -> str:
    """Replace non-word characters so the bid number can be used in a file name."""
    return re.sub(r"[^\w]", "_", numero or "sem_numero")


def format_datetime(value: Optional[datetime], with_seconds: bool = True) -> str:
    """dd/MM/yyyy HH:mm[:ss] or N/A."""
    if value is None:
        return "N/A"
    return value.strftime("%d/%m/%Y %H:%M:%S" if with_seconds else "%d/%m/%Y %H:%M")


def styles() -> StyleSheet1:
    sheet = getSampleStyleSheet()
    sheet.add(
        ParagraphStyle(
            "DocTitle",
            parent=sheet["Heading1"],
            fontSize=16,
            textColor=BRAND,
            alignment=TA_CENTER,
            spaceAfter=8,
        )
    )
    sheet.add(ParagraphStyle("Section", parent=sheet["Heading3"], textColor=BRAND, spaceBefore=8))
    sheet.add(ParagraphStyle("Detail", parent=sheet["Normal"], fontSize=10, leading=13))
    return sheet


def detail(sheet: StyleSheet1, label: str, value: Optional[str]) -> Optional[Paragraph]:
    """"<b>label:</b> value" line, skipped when value is None."""
    if value is None:
        return None
    return Paragraph(f"<b>{escape(label)}:</b> {escape(str(value))}", sheet["Detail"])


def header(sheet: StyleSheet1, title: str, company: Optional[CompanyConfig], generated_at: datetime) -> list:
    """Logo, title, company line and generation date."""
    elements: list = []
    logo: Optional[Path] = company.logo_path if company else None
    if logo and Path(logo).exists():
        elements.append(Image(str(logo), width=25 * mm, height=25 * mm))
    elements.append(Paragraph(escape(title), sheet["DocTitle"]))
    if company:
        elements.append(
            Paragraph(
                f"Assessoria: {escape(company.display_name)} (CNPJ: {escape(company.cnpj)})",
                sheet["Detail"],
            )
        )
    elements.append(Paragraph(f"Data da Geração: {format_datetime(generated_at, False)}", sheet["Detail"]))
    elements.append(Spacer(1, 4 * mm))
    return elements
