"""
Serviço: Consultas (saldo, situação do cliente, fatura do mês, dashboard)
lanebeleza/services/ledger.py

Tudo é calculado na leitura a partir de débitos e pagamentos; nada aqui
grava no banco.

Situação do cliente (lista de clientes):
  - atrasado:          débito de mês passado (ou do mês atual após o dia de
                       vencimento) sem nenhum pagamento
  - atrasado_parcial:  idem, mas com pagamento parcial
  - pendente:          há débitos em aberto ainda dentro do prazo
  - em_dia:            nada em aberto
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from lanebeleza.exceptions import NotFoundError
from lanebeleza.models import Client, ClientStanding, Debt, DebtStatus, Payment, Sale
from lanebeleza.schemas import parse_products
from lanebeleza.utils.formatters import first_of_month, format_date, money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def debt_paid(debt: Debt) -> Decimal:
    return sum((money(p.amount) for p in debt.payments), ZERO)


def due_date_for(month: date, invoice_day: Optional[int]) -> date:
    """Dia de vencimento dentro do mês (limitado ao último dia)."""
    inicio = first_of_month(month)
    ultimo = (inicio + relativedelta(months=1, days=-1)).day
    return inicio.replace(day=max(1, min(invoice_day or 1, ultimo)))


def client_balance(client: Client) -> Decimal:
    """Soma dos débitos menos soma dos pagamentos."""
    total = ZERO
    for debt in client.debts:
        total += money(debt.amount) - debt_paid(debt)
    return total


def client_standing(client: Client, today: Optional[date] = None) -> ClientStanding:
    hoje = today or date.today()
    mes_atual = first_of_month(hoje)
    vencimento_atual = due_date_for(mes_atual, client.invoice_day)

    atrasado = False
    atrasado_parcial = False
    pendente = False

    for debt in client.debts:
        valor = money(debt.amount)
        pago = debt_paid(debt)
        parcial = ZERO < pago < valor
        em_aberto = debt.status in (DebtStatus.OPEN.value, DebtStatus.PARTIAL.value)

        if debt.invoice_month:
            mes = first_of_month(debt.invoice_month)
            vencido = mes < mes_atual or (
                mes == mes_atual and hoje > vencimento_atual and debt.status != DebtStatus.PAID.value
            )
            if vencido:
                if parcial:
                    atrasado_parcial = True
                elif em_aberto:
                    atrasado = True

        if em_aberto:
            pendente = True

    if atrasado:
        return ClientStanding.ATRASADO
    if atrasado_parcial:
        return ClientStanding.ATRASADO_PARCIAL
    if pendente:
        return ClientStanding.PENDENTE
    return ClientStanding.EM_DIA


def client_summaries(db: Session, today: Optional[date] = None) -> List[Dict]:
    """Lista de clientes com saldo e situação."""
    clients = (
        db.query(Client)
        .options(selectinload(Client.debts).selectinload(Debt.payments))
        .order_by(Client.name)
        .all()
    )
    return [
        {
            "id": c.id,
            "name": c.name,
            "phone": c.phone,
            "total_debt": float(client_balance(c)),
            "status": client_standing(c, today).value,
            "last_invoice_sent_at": c.last_invoice_sent_at.isoformat() if c.last_invoice_sent_at else None,
            "last_invoice_sent_month": c.last_invoice_sent_month,
        }
        for c in clients
    ]


def monthly_invoice(db: Session, client_id: int, month: date) -> Dict:
    """
    Fatura do mês: débitos com invoice_month no mês + seus pagamentos,
    em ordem cronológica, e os totais.
    """
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError(f"Cliente {client_id} não encontrado")

    inicio = first_of_month(month)
    fim = inicio + relativedelta(months=1, days=-1)

    debts = (
        db.query(Debt)
        .options(selectinload(Debt.payments))
        .filter(
            Debt.client_id == client_id,
            Debt.invoice_month >= inicio,
            Debt.invoice_month <= fim,
        )
        .order_by(Debt.invoice_month.asc(), Debt.id.asc())
        .all()
    )

    transacoes = []
    total_amount = ZERO
    total_paid = ZERO
    for d in debts:
        total_amount += money(d.amount)
        data_debito = d.transaction_date or (d.created_at.date() if d.created_at else None)
        transacoes.append({
            "id": d.id,
            "type": "debt",
            "date": data_debito.isoformat() if data_debito else None,
            "description": d.description,
            "amount": float(d.amount),
            "status": d.status,
            "invoice_month": d.invoice_month.isoformat() if d.invoice_month else None,
        })
        for p in d.payments:
            total_paid += money(p.amount)
            transacoes.append({
                "id": p.id,
                "type": "payment",
                "date": p.payment_date.isoformat(),
                "description": "Pagamento",
                "amount": -float(p.amount),
                "payment_method": p.payment_method,
                "invoice_month": p.invoice_month.isoformat() if p.invoice_month else None,
            })

    transacoes.sort(key=lambda t: t["date"] or "")
    vencimento = due_date_for(inicio, client.invoice_day)

    return {
        "client_id": client.id,
        "client_name": client.name,
        "month": inicio.strftime("%Y-%m"),
        "invoice_day": client.invoice_day or 1,
        "due_date": vencimento.isoformat(),
        "due_date_label": format_date(vencimento),
        "transactions": transacoes,
        "total_amount": float(total_amount),
        "total_paid": float(total_paid),
        "pending_amount": float(total_amount - total_paid),
    }


def dashboard_totals(db: Session, today: Optional[date] = None) -> Dict:
    """Cards do dashboard: total em aberto, clientes, pagamentos de hoje."""
    hoje = today or date.today()

    total_debts = db.query(func.coalesce(func.sum(Debt.amount), 0)).scalar() or 0
    total_payments = db.query(func.coalesce(func.sum(Payment.amount), 0)).scalar() or 0
    total_clients = db.query(func.count(Client.id)).scalar() or 0
    pagos_hoje = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.payment_date == hoje
    ).scalar() or 0

    return {
        "total_debt": float(money(total_debts) - money(total_payments)),
        "total_clients": int(total_clients),
        "today_payments": float(money(pagos_hoje)),
        "date": hoje.isoformat(),
    }


def sales_report(db: Session, limit: int = 100) -> List[Dict]:
    sales = (
        db.query(Sale)
        .options(selectinload(Sale.client))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": s.id,
            "client_id": s.client_id,
            "client_name": s.client.name if s.client else None,
            "total_amount": float(s.total_amount),
            "products": [p.to_json() for p in parse_products(s.products)],
            "payment_method": s.payment_method,
            "installments": s.installments or 1,
            "debt_ids": [d.id for d in s.debts],
            "created_at": s.created_at.isoformat() if s.created_at else None,
        }
        for s in sales
    ]
