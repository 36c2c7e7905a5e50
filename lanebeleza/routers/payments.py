"""
Módulo: Pagamentos
lanebeleza/routers/payments.py
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel

from lanebeleza.database import get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.services.payments import delete_payment, register_payment

router = APIRouter(prefix="/api/payments", tags=["Pagamentos"])


class PaymentCreate(BaseModel):
    debt_id: int
    amount: Decimal
    payment_date: Optional[date] = None
    payment_method: str = "manual"


@router.post("", status_code=201)
def registrar_pagamento(
    body: PaymentCreate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    payment = register_payment(
        db,
        debt_id=body.debt_id,
        amount=body.amount,
        payment_date=body.payment_date,
        payment_method=body.payment_method,
        bus=bus,
    )
    return {
        "success": True,
        "payment_id": payment.id,
        "debt_id": payment.debt_id,
        "amount": float(payment.amount),
        "payment_date": payment.payment_date.isoformat(),
        "invoice_month": payment.invoice_month.isoformat() if payment.invoice_month else None,
        "debt_status": payment.debt.status,
    }


@router.delete("/{payment_id}")
def excluir_pagamento(
    payment_id: int,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    delete_payment(db, payment_id, bus=bus)
    return {"success": True}
