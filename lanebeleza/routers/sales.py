"""
Módulo: Vendas
lanebeleza/routers/sales.py

Fluxo: Cliente → Produtos → Forma de pagamento → Grava → Resumo no WhatsApp

Só o crédito próprio da loja gera débito(s). O resumo é enviado depois
do commit; se o WhatsApp falhar, a venda continua gravada.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from lanebeleza.database import get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.models import Client
from lanebeleza.schemas import ProductLine
from lanebeleza.services.ledger import sales_report
from lanebeleza.services.notifications import WhatsAppClient, get_whatsapp_client, notify_sale
from lanebeleza.services.recorder import delete_sale, record_sale
from lanebeleza.utils.formatters import parse_month

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sales", tags=["Vendas"])


class SaleCreate(BaseModel):
    client_id: int
    products: List[ProductLine] = Field(..., min_length=1)
    payment_method: str
    installments: int = 1
    invoice_month: Optional[str] = None       # 'YYYY-MM', só no crédito da loja
    description: Optional[str] = None
    transaction_date: Optional[date] = None
    total: Optional[Decimal] = None
    notify: bool = True


@router.post("", status_code=201)
async def registrar_venda(
    body: SaleCreate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
    sender: WhatsAppClient = Depends(get_whatsapp_client),
):
    mes = parse_month(body.invoice_month) if body.invoice_month else None

    resultado = record_sale(
        db,
        client_id=body.client_id,
        products=body.products,
        payment_method=body.payment_method,
        installments=body.installments,
        invoice_month=mes,
        description=body.description,
        transaction_date=body.transaction_date,
        total=body.total,
        bus=bus,
    )

    notificacao = None
    if body.notify:
        client = db.query(Client).filter(Client.id == resultado.client_id).first()
        status = await notify_sale(db, client, resultado, body.products, resultado.payment_method, sender)
        notificacao = status.value

    return {
        "success": True,
        "sale_id": resultado.sale_id,
        "debt_ids": resultado.debt_ids,
        "total": float(resultado.total),
        "payment_method": resultado.payment_method,
        "installments": resultado.installments,
        "installment_amount": float(resultado.installment_amount) if resultado.installment_amount else None,
        "first_due_date": resultado.first_due_date.isoformat() if resultado.first_due_date else None,
        "notification": notificacao,
    }


@router.get("")
def relatorio_vendas(limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db)):
    return sales_report(db, limit=limit)


@router.delete("/{sale_id}")
def excluir_venda(
    sale_id: int,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    delete_sale(db, sale_id, bus=bus)
    return {"success": True}
