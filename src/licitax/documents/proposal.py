"""Final proposal ("Proposta Final") PDF."""

from datetime import datetime
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from licitax.models.bid import Bid, Operator, ProposalItem
from licitax.models.company import CompanyConfig
from licitax.money import format_brl

from .common import BRAND, detail, header, styles


def final_items(bid: Bid) -> list[ProposalItem]:
    """Final-priced items: the dispute snapshot, falling back to the bid items."""
    if bid.disputa_log and bid.disputa_log.itens_proposta_final_cliente:
        return bid.disputa_log.itens_proposta_final_cliente
    return bid.itens_proposta


def render_final_proposal(
    bid: Bid,
    output_path: Path,
    *,
    company: Optional[CompanyConfig] = None,
    operator: Optional[Operator] = None,
    declaration: Optional[str] = None,
    generated_at: datetime,
) -> Path:
    """Write the client's final proposal with per-item pricing to output_path."""
    sheet = styles()
    elements: list = header(sheet, "PROPOSTA FINAL", company, generated_at)

    for label, value in (
        ("Cliente", bid.cliente_nome),
        ("CNPJ do Cliente", bid.cliente_cnpj),
        ("Licitação", bid.numero),
        ("Órgão", bid.orgao_comprador),
        ("Modalidade", bid.modalidade),
    ):
        line = detail(sheet, label, value)
        if line:
            elements.append(line)
    elements.append(Spacer(1, 4 * mm))

    rows: list = [["Lote", "Descrição", "Unid.", "Qtd.", "Valor Unit.", "Valor Total"]]
    for item in final_items(bid):
        rows.append(
            [
                item.lote or "-",
                Paragraph(escape(item.descricao), sheet["Detail"]),
                item.unidade,
                str(item.quantidade),
                format_brl(item.valor_unitario_final_cliente),
                format_brl(item.valor_total_final_cliente),
            ]
        )
    total = bid.disputa_log.valor_final_proposta_cliente if bid.disputa_log else None
    rows.append(["", "", "", "", "Total:", format_brl(total)])

    table = Table(rows, colWidths=[15 * mm, 70 * mm, 15 * mm, 15 * mm, 27 * mm, 30 * mm], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("GRID", (0, 0), (-1, -2), 0.5, colors.grey),
                ("FONTNAME", (4, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (4, -1), (-1, -1), 1, BRAND),
            ]
        )
    )
    elements.append(table)

    if bid.observacoes_proposta_final:
        elements.append(Paragraph("Observações", sheet["Section"]))
        elements.append(Paragraph(escape(bid.observacoes_proposta_final), sheet["Detail"]))

    if declaration:
        elements.append(Paragraph("Declaração", sheet["Section"]))
        for paragraph in declaration.split("\n\n"):
            elements.append(Paragraph(escape(paragraph).replace("\n", "<br/>"), sheet["Detail"]))

    elements.append(Spacer(1, 15 * mm))
    elements.append(Paragraph("_" * 50, sheet["Detail"]))
    signer = operator.display_name if operator else (company.display_name if company else "")
    elements.append(Paragraph(escape(signer), sheet["Detail"]))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"Proposta Final {bid.numero}",
    )
    doc.build(elements)
    return output_path
