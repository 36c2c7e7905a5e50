from datetime import date
from decimal import Decimal

import pytest

from lanebeleza.models import Client, Debt
from lanebeleza.services.promissoria import generate_promissory_note, installment_info


@pytest.mark.parametrize("description, expected", [
    ("Bolsa (Origem - R$ 300,00) (2/3)", (2, 3)),
    ("Parcela (Origem - R$ 1.200,00) (12/12) ", (12, 12)),
    ("Esmalte", (1, 1)),
    (None, (1, 1)),
])
def test_installment_info(description, expected):
    assert installment_info(description) == expected


def test_generate_pdf():
    client = Client(name="Maria Souza", document="123.456.789-00", address="Rua A, 10", invoice_day=10)
    debt = Debt(amount=Decimal("100.00"), description="Bolsa (Origem - R$ 300,00) (1/3)",
                invoice_month=date(2024, 1, 1))

    pdf = generate_promissory_note(debt, client, payee="LANE&BELEZA", city="CARUARU")

    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_generate_pdf_without_optional_client_data():
    client = Client(name="Sem Documento")
    debt = Debt(amount=Decimal("59.90"))

    assert generate_promissory_note(debt, client).startswith(b"%PDF")


def test_generate_pdf_amount_in_millions():
    client = Client(name="Atacado Souza", invoice_day=5)
    debt = Debt(amount=Decimal("2500000.00"), invoice_month=date(2024, 3, 1))

    assert generate_promissory_note(debt, client).startswith(b"%PDF")
