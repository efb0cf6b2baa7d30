"""Session minutes ("Ata da Sessão de Disputa") PDF."""

from datetime import datetime
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from licitax.models.bid import Bid, Operator
from licitax.models.company import CompanyConfig
from licitax.money import format_brl, format_percent

from .common import BRAND, detail, format_datetime, header, styles


def render_session_minutes(
    bid: Bid,
    output_path: Path,
    *,
    company: Optional[CompanyConfig] = None,
    operator: Optional[Operator] = None,
    generated_at: datetime,
) -> Path:
    """Write the minutes of a concluded dispute to output_path."""
    sheet = styles()
    elements: list = header(sheet, "ATA DA SESSÃO DE DISPUTA", company, generated_at)

    elements.append(Paragraph("Dados da Licitação", sheet["Section"]))
    for label, value in (
        ("Protocolo", bid.id),
        ("Cliente", bid.cliente_nome),
        ("Número Lic.", bid.numero),
        ("Órgão", bid.orgao_comprador),
        ("Modalidade", bid.modalidade),
        ("Plataforma", bid.plataforma),
        ("Valor de Referência do Edital", format_brl(bid.valor_referencia_edital) or None),
    ):
        line = detail(sheet, label, value)
        if line:
            elements.append(line)

    elements.append(Paragraph("Configuração da Disputa (Limite Cliente)", sheet["Section"]))
    config = bid.disputa_config
    if config and config.limite_tipo == "valor":
        elements.append(detail(sheet, "Tipo de Limite", "Valor Absoluto"))
        elements.append(detail(sheet, "Valor Limite Definido", format_brl(config.limite_valor)))
    elif config and config.limite_tipo == "percentual":
        elements.append(detail(sheet, "Tipo de Limite", "Percentual"))
        elements.append(detail(sheet, "Percentual Definido", format_percent(config.limite_valor)))
        elements.append(
            detail(
                sheet,
                "Valor Calculado (Pode Chegar Até)",
                format_brl(config.valor_calculado_ate_onde_pode_chegar),
            )
        )
    else:
        elements.append(detail(sheet, "Limite Cliente", "Não definido ou não aplicável."))

    log = bid.disputa_log
    elements.append(Paragraph("Registro da Disputa", sheet["Section"]))
    elements.append(detail(sheet, "Início da Disputa", format_datetime(log.iniciada_em if log else None)))
    elements.append(detail(sheet, "Iniciada por", (log.iniciada_por if log else None) or "N/A"))
    elements.append(detail(sheet, "Fim da Disputa", format_datetime(log.finalizada_em if log else None)))
    elements.append(detail(sheet, "Duração Total", (log.duracao if log else None) or "N/A"))

    if log and log.mensagens:
        rows = [["Horário", "Autor", "Mensagem"]]
        for msg in log.mensagens:
            rows.append(
                [
                    format_datetime(msg.timestamp),
                    Paragraph(escape(msg.autor), sheet["Detail"]),
                    Paragraph(escape(msg.texto), sheet["Detail"]),
                ]
            )
        table = Table(rows, colWidths=[35 * mm, 35 * mm, 100 * mm], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), BRAND),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ]
            )
        )
        elements.append(Spacer(1, 3 * mm))
        elements.append(table)

    elements.append(Paragraph("Resultado da Disputa", sheet["Section"]))
    if log and log.cliente_venceu:
        elements.append(detail(sheet, "Resultado", "Cliente Venceu a Licitação"))
    else:
        elements.append(detail(sheet, "Resultado", "Cliente Não Venceu"))
        posicao = str(log.posicao_cliente) if log and log.posicao_cliente else "Não informada"
        elements.append(detail(sheet, "Posição Final do Cliente", posicao))
    if log and log.valor_final_proposta_cliente is not None:
        elements.append(
            detail(sheet, "Valor Final da Proposta do Cliente", format_brl(log.valor_final_proposta_cliente))
        )

    elements.append(Spacer(1, 8 * mm))
    conductor = operator.display_name if operator else "Usuário do Sistema"
    elements.append(Paragraph(f"Sessão conduzida por: {escape(conductor)}", sheet["Detail"]))
    if operator and operator.cpf:
        elements.append(Paragraph(f"CPF do Operador: {escape(operator.cpf)}", sheet["Detail"]))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"Ata Disputa {bid.numero}",
    )
    doc.build(elements)
    return output_path
