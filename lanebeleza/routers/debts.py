"""
Módulo: Débitos
lanebeleza/routers/debts.py

Fluxo: Cliente → Valor ou produtos → Parcelas → Grava → (opcional) WhatsApp
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session, selectinload
from pydantic import BaseModel, Field

from lanebeleza.database import get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.exceptions import NotFoundError
from lanebeleza.models import Client, Debt
from lanebeleza.schemas import ProductLine
from lanebeleza.services.ledger import debt_paid
from lanebeleza.services.notifications import WhatsAppClient, get_whatsapp_client, notify_sale
from lanebeleza.services.promissoria import generate_promissory_note
from lanebeleza.services.recorder import delete_debts, record_debt
from lanebeleza.utils.formatters import parse_month

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/debts", tags=["Débitos"])


# ============================================================
# SCHEMAS
# ============================================================

class DebtCreate(BaseModel):
    client_id: int
    amount: Optional[Decimal] = None
    products: List[ProductLine] = []
    installments: int = 1
    invoice_month: Optional[str] = None       # 'YYYY-MM'
    description: Optional[str] = None
    transaction_date: Optional[date] = None
    notify: bool = False


class DebtDelete(BaseModel):
    debt_ids: List[int] = Field(..., min_length=1)


def _debt_dict(d: Debt) -> dict:
    pago = debt_paid(d)
    return {
        "id": d.id,
        "client_id": d.client_id,
        "sale_id": d.sale_id,
        "amount": float(d.amount),
        "paid": float(pago),
        "description": d.description,
        "transaction_date": d.transaction_date.isoformat() if d.transaction_date else None,
        "invoice_month": d.invoice_month.isoformat() if d.invoice_month else None,
        "status": d.status,
        "products": d.products or [],
        "created_at": d.created_at.isoformat() if d.created_at else None,
    }


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("", status_code=201)
async def registrar_debito(
    body: DebtCreate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
    sender: WhatsAppClient = Depends(get_whatsapp_client),
):
    mes = parse_month(body.invoice_month) if body.invoice_month else None

    resultado = record_debt(
        db,
        client_id=body.client_id,
        amount=body.amount,
        products=body.products,
        installments=body.installments,
        invoice_month=mes,
        description=body.description,
        transaction_date=body.transaction_date,
        bus=bus,
    )

    # Já commitado; a notificação não desfaz o débito
    notificacao = None
    if body.notify:
        client = db.query(Client).filter(Client.id == resultado.client_id).first()
        linhas = body.products or [
            ProductLine(description=body.description or "Débito", value=resultado.total)
        ]
        status = await notify_sale(db, client, resultado, linhas, None, sender)
        notificacao = status.value

    return {
        "success": True,
        "debt_ids": resultado.debt_ids,
        "total": float(resultado.total),
        "installments": resultado.installments,
        "installment_amount": float(resultado.installment_amount),
        "first_due_date": resultado.first_due_date.isoformat(),
        "notification": notificacao,
    }


@router.get("")
def listar_debitos(client_id: int = Query(...), db: Session = Depends(get_db)):
    debts = (
        db.query(Debt)
        .options(selectinload(Debt.payments))
        .filter(Debt.client_id == client_id)
        .order_by(Debt.invoice_month.asc(), Debt.id.asc())
        .all()
    )
    return [_debt_dict(d) for d in debts]


@router.delete("")
def excluir_debitos(
    body: DebtDelete,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    total = delete_debts(db, body.debt_ids, bus=bus)
    return {"success": True, "deleted": total}


@router.get("/{debt_id}/promissoria")
def nota_promissoria(debt_id: int, db: Session = Depends(get_db)):
    debt = db.query(Debt).filter(Debt.id == debt_id).first()
    if not debt:
        raise NotFoundError(f"Débito {debt_id} não encontrado")

    pdf = generate_promissory_note(debt, debt.client)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="promissoria_{debt_id}.pdf"'},
    )
