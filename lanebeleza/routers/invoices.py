"""
Módulo: Fatura do mês
lanebeleza/routers/invoices.py
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lanebeleza.database import get_db
from lanebeleza.services.ledger import monthly_invoice
from lanebeleza.utils.formatters import parse_month

router = APIRouter(prefix="/api/invoices", tags=["Faturas"])


@router.get("/{client_id}")
def fatura_do_mes(
    client_id: int,
    month: Optional[str] = Query(None, description="YYYY-MM (padrão: mês atual)"),
    db: Session = Depends(get_db),
):
    mes = parse_month(month) if month else date.today()
    return monthly_invoice(db, client_id, mes)
