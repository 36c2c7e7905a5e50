"""
Módulo: Funções de envio (WhatsApp)
lanebeleza/routers/functions.py

Dois endpoints no formato das funções do painel:
  POST /functions/send-invoice           → lembrete de fatura
  POST /functions/send-whatsapp-message  → resumo de compra avulso

Respondem {"success": true} (200) ou {"error": "..."} (400).
Os campos aceitam camelCase (como o painel envia) ou snake_case.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional, Type, TypeVar, Union
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from lanebeleza.database import get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.exceptions import GestaoError, ValidationError
from lanebeleza.schemas import ProductLine
from lanebeleza.services.notifications import (
    WhatsAppClient, compose_sale_message, get_whatsapp_client, send_invoice_reminder,
)
from lanebeleza.services.recorder import is_store_credit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["Funções"])

M = TypeVar("M", bound=BaseModel)


class InvoiceReminderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: int = Field(..., alias="clientId")
    due_date: Union[date, str] = Field(..., alias="dueDate")
    invoice_amount: Decimal = Field(..., alias="invoiceAmount")
    total_debt: Decimal = Field(..., alias="totalDebt")
    invoice_month: Optional[str] = Field(None, alias="invoiceMonth")


class SaleMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str
    customer_name: str = Field(..., alias="customerName")
    products: List[ProductLine]
    total_amount: Decimal = Field(..., alias="totalAmount")
    payment_method: str = Field(..., alias="paymentMethod")
    installments: Optional[int] = None
    installment_amount: Optional[Decimal] = Field(None, alias="installmentAmount")
    first_payment_date: Optional[Union[date, str]] = Field(None, alias="firstPaymentDate")


def _ler_corpo(raw: bytes, model: Type[M]) -> M:
    """JSON do corpo → schema; qualquer falha vira ValidationError (400)."""
    try:
        return model.model_validate_json(raw or b"")
    except PydanticValidationError as e:
        erro = e.errors()[0]
        campo = ".".join(str(p) for p in erro["loc"]) or "corpo"
        raise ValidationError(f"Requisição inválida ({campo}): {erro['msg']}")


@router.post("/send-invoice")
async def send_invoice(
    request: Request,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
    sender: WhatsAppClient = Depends(get_whatsapp_client),
):
    try:
        body = _ler_corpo(await request.body(), InvoiceReminderRequest)
        await send_invoice_reminder(
            db, sender,
            client_id=body.client_id,
            due_date=body.due_date,
            invoice_amount=body.invoice_amount,
            total_debt=body.total_debt,
            invoice_month=body.invoice_month,
        )
    except GestaoError as e:
        logger.warning(f"Lembrete de fatura não enviado: {e.message}")
        return JSONResponse({"error": e.message}, status_code=400)

    bus.publish("client", body.client_id)
    return JSONResponse({"success": True})


@router.post("/send-whatsapp-message")
async def send_whatsapp_message(
    request: Request,
    sender: WhatsAppClient = Depends(get_whatsapp_client),
):
    try:
        body = _ler_corpo(await request.body(), SaleMessageRequest)
        parcelado = is_store_credit(body.payment_method) and (body.installments or 1) > 1
        texto = compose_sale_message(
            customer_name=body.customer_name,
            products=body.products,
            total=body.total_amount,
            payment_method=body.payment_method,
            installments=body.installments if parcelado else None,
            installment_amount=body.installment_amount,
            first_due_date=body.first_payment_date,
        )
        await sender.send_text(body.phone, texto)
    except GestaoError as e:
        logger.warning(f"Resumo de compra não enviado: {e.message}")
        return JSONResponse({"error": e.message}, status_code=400)

    return JSONResponse({"success": True})
