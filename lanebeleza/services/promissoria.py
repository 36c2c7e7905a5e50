"""
Serviço: Nota Promissória em PDF
lanebeleza/services/promissoria.py

Uma nota por débito (parcela):
- Número "i/N" tirado da descrição "(i/N)" da parcela
- Vencimento por extenso (dia de fatura do cliente no mês do débito)
- Valor em número e por extenso
- Dados do emitente (cliente) e linha de assinatura

Requer: pip install reportlab
"""

import io
import re
from datetime import date
from typing import Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, black
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer

from lanebeleza.config import PROMISSORY_CITY, PROMISSORY_PAYEE
from lanebeleza.models import Client, Debt
from lanebeleza.utils.formatters import date_in_words, format_currency, money_in_words

# ── Cores ──
CINZA_ESCURO = HexColor("#1e293b")
CINZA_BORDA = HexColor("#cbd5e1")

_PARCELA_RE = re.compile(r"\((\d+)/(\d+)\)\s*$")


def installment_info(description: Optional[str]) -> Tuple[int, int]:
    """'Bolsa (Origem - R$ 300,00) (2/3)' → (2, 3). Sem marcação → (1, 1)."""
    if not description:
        return 1, 1
    m = _PARCELA_RE.search(description)
    if not m:
        return 1, 1
    return int(m.group(1)), int(m.group(2))


def _nao_informado(valor: Optional[str]) -> str:
    return escape(valor) if valor else "Não informado"


def generate_promissory_note(
    debt: Debt,
    client: Client,
    payee: str = PROMISSORY_PAYEE,
    city: str = PROMISSORY_CITY,
) -> bytes:
    """
    Gera a nota promissória do débito.

    Returns:
        bytes do PDF gerado
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=25 * mm,
        bottomMargin=20 * mm,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        title="Nota Promissória",
    )

    styles = getSampleStyleSheet()
    s_titulo = ParagraphStyle(
        "Titulo", parent=styles["Heading1"],
        fontSize=18, textColor=CINZA_ESCURO, alignment=TA_CENTER,
        fontName="Helvetica-Bold", spaceAfter=12,
    )
    s_negrito = ParagraphStyle(
        "Negrito", parent=styles["Normal"],
        fontSize=11, textColor=black, leading=16, fontName="Helvetica-Bold",
    )
    s_normal = ParagraphStyle(
        "Normal2", parent=styles["Normal"],
        fontSize=11, textColor=black, leading=17,
    )
    s_center = ParagraphStyle("Center", parent=s_normal, alignment=TA_CENTER)

    atual, total = installment_info(debt.description)
    mes = debt.invoice_month or date.today()
    vencimento = date_in_words(mes, client.invoice_day or 1)

    story = [
        Paragraph("Nota Promissória", s_titulo),
        Paragraph("REPÚBLICA FEDERATIVA DO BRASIL", s_negrito),
        Paragraph(f"NOTA PROMISSÓRIA Nº {atual}/{total}", s_negrito),
        Paragraph(f"Valor {format_currency(debt.amount)}", s_negrito),
        Spacer(1, 6 * mm),
        Paragraph(
            f"No dia {vencimento} pagaremos por esta única via de NOTA PROMISSÓRIA "
            f"a {escape(payee)} ou à sua ordem a quantia de {money_in_words(debt.amount)} "
            f"em moeda corrente deste país.",
            s_normal,
        ),
        Spacer(1, 4 * mm),
        Paragraph(f"Pagável em {escape(city)}", s_normal),
        Spacer(1, 4 * mm),
        Paragraph(f"<b>Emitente:</b> {_nao_informado(client.name)}", s_normal),
        Paragraph(f"<b>CPF/CNPJ:</b> {_nao_informado(client.document)}", s_normal),
        Paragraph(f"<b>Endereço:</b> {_nao_informado(client.address)}", s_normal),
        Spacer(1, 25 * mm),
        HRFlowable(width="70%", thickness=1, color=CINZA_BORDA, hAlign="CENTER"),
        Paragraph("Assinatura do Emitente", s_center),
    ]

    doc.build(story)
    return buffer.getvalue()
