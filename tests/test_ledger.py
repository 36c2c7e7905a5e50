"""Saldo, situação do cliente, fatura do mês e totais do dashboard."""

from datetime import date
from decimal import Decimal

import pytest

from lanebeleza.exceptions import NotFoundError, ValidationError
from lanebeleza.models import ClientStanding
from lanebeleza.schemas import ProductLine, parse_products
from lanebeleza.services.ledger import (
    client_balance, client_standing, client_summaries, dashboard_totals,
    due_date_for, monthly_invoice, sales_report,
)
from lanebeleza.services.payments import register_payment
from lanebeleza.services.recorder import record_debt, record_sale

HOJE = date(2024, 3, 15)


def test_due_date_for_clamps_day():
    assert due_date_for(date(2024, 2, 1), 31) == date(2024, 2, 29)
    assert due_date_for(date(2024, 1, 1), 10) == date(2024, 1, 10)
    assert due_date_for(date(2024, 1, 1), None) == date(2024, 1, 1)


def test_client_balance(db, make_client):
    client = make_client()
    r = record_debt(db, client.id, amount=Decimal("300"), installments=3)
    register_payment(db, r.debt_ids[0], Decimal("50"))
    db.refresh(client)

    assert client_balance(client) == Decimal("250.00")


def test_standing_without_debts(db, make_client):
    assert client_standing(make_client(), HOJE) == ClientStanding.EM_DIA


def test_standing_past_month_open_is_overdue(db, make_client):
    client = make_client()
    record_debt(db, client.id, amount=Decimal("50"), invoice_month=date(2024, 2, 1))
    db.refresh(client)
    assert client_standing(client, HOJE) == ClientStanding.ATRASADO


def test_standing_past_month_partial(db, make_client):
    client = make_client()
    r = record_debt(db, client.id, amount=Decimal("50"), invoice_month=date(2024, 2, 1))
    register_payment(db, r.debt_ids[0], Decimal("20"))
    db.refresh(client)
    assert client_standing(client, HOJE) == ClientStanding.ATRASADO_PARCIAL


def test_standing_future_month_is_pending(db, make_client):
    client = make_client()
    record_debt(db, client.id, amount=Decimal("50"), invoice_month=date(2024, 4, 1))
    db.refresh(client)
    assert client_standing(client, HOJE) == ClientStanding.PENDENTE


@pytest.mark.parametrize("invoice_day, expected", [
    (10, ClientStanding.ATRASADO),      # vencimento 10/03 já passou
    (20, ClientStanding.PENDENTE),      # vence 20/03
])
def test_standing_current_month_depends_on_invoice_day(db, make_client, invoice_day, expected):
    client = make_client(invoice_day=invoice_day)
    record_debt(db, client.id, amount=Decimal("50"), invoice_month=date(2024, 3, 1))
    db.refresh(client)
    assert client_standing(client, HOJE) == expected


def test_standing_paid_past_debt(db, make_client):
    client = make_client()
    r = record_debt(db, client.id, amount=Decimal("50"), invoice_month=date(2024, 1, 1))
    register_payment(db, r.debt_ids[0], Decimal("50"))
    db.refresh(client)
    assert client_standing(client, HOJE) == ClientStanding.EM_DIA


def test_client_summaries(db, make_client):
    ana = make_client(name="Ana")
    make_client(name="Bruna")
    record_debt(db, ana.id, amount=Decimal("80"), invoice_month=date(2024, 2, 1))

    linhas = client_summaries(db, HOJE)
    assert [c["name"] for c in linhas] == ["Ana", "Bruna"]
    assert linhas[0]["total_debt"] == 80.0
    assert linhas[0]["status"] == "atrasado"
    assert linhas[1]["status"] == "em_dia"


def test_monthly_invoice(db, make_client):
    client = make_client(invoice_day=10)
    r = record_debt(db, client.id, amount=Decimal("300"), installments=3,
                    invoice_month=date(2024, 1, 1), transaction_date=date(2024, 1, 3))
    record_debt(db, client.id, amount=Decimal("25"), invoice_month=date(2024, 1, 1),
                transaction_date=date(2024, 1, 8))
    register_payment(db, r.debt_ids[0], Decimal("60"), payment_date=date(2024, 1, 9))

    fatura = monthly_invoice(db, client.id, date(2024, 1, 1))

    assert fatura["month"] == "2024-01"
    assert fatura["due_date"] == "2024-01-10"
    assert fatura["due_date_label"] == "10/01/2024"
    assert fatura["total_amount"] == 125.0
    assert fatura["total_paid"] == 60.0
    assert fatura["pending_amount"] == 65.0
    assert [t["type"] for t in fatura["transactions"]] == ["debt", "debt", "payment"]
    assert fatura["transactions"][-1]["amount"] == -60.0

    fevereiro = monthly_invoice(db, client.id, date(2024, 2, 1))
    assert fevereiro["total_amount"] == 100.0
    assert fevereiro["total_paid"] == 0.0


def test_monthly_invoice_unknown_client(db):
    with pytest.raises(NotFoundError):
        monthly_invoice(db, 999, date(2024, 1, 1))


def test_dashboard_totals(db, make_client):
    client = make_client()
    make_client(name="Outra")
    r = record_debt(db, client.id, amount=Decimal("200"))
    register_payment(db, r.debt_ids[0], Decimal("30"), payment_date=HOJE)
    register_payment(db, r.debt_ids[0], Decimal("20"), payment_date=date(2024, 3, 1))

    totais = dashboard_totals(db, HOJE)
    assert totais == {
        "total_debt": 150.0,
        "total_clients": 2,
        "today_payments": 30.0,
        "date": "2024-03-15",
    }


def test_sales_report_newest_first(db, make_client):
    client = make_client()
    linha = [ProductLine(description="Batom", value=Decimal("25"))]
    primeira = record_sale(db, client.id, linha, "Dinheiro")
    segunda = record_sale(db, client.id, linha, "Crédito Próprio Loja", installments=2)

    vendas = sales_report(db)
    assert [v["id"] for v in vendas] == [segunda.sale_id, primeira.sale_id]
    assert vendas[0]["client_name"] == client.name
    assert len(vendas[0]["debt_ids"]) == 2
    assert vendas[1]["debt_ids"] == []
    assert vendas[0]["products"] == [{"description": "Batom", "value": 25.0}]


def test_parse_products_rejects_invalid_lines():
    assert parse_products(None) == []
    with pytest.raises(ValidationError):
        parse_products([{"description": "Batom", "value": 0}])
    with pytest.raises(ValidationError):
        parse_products([{"description": "Batom"}])
