"""
Módulo: Clientes
lanebeleza/routers/clients.py

Cadastro de clientes e lista com saldo devedor + situação.
"""
from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, field_validator

from lanebeleza.database import get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.models import Client
from lanebeleza.services.ledger import client_balance, client_standing, client_summaries

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["Clientes"])


# ============================================================
# SCHEMAS
# ============================================================

class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = None
    is_whatsapp: bool = True
    document: Optional[str] = None
    address: Optional[str] = None
    invoice_day: int = Field(1, ge=1, le=31)

    @field_validator("name")
    @classmethod
    def _nome(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Nome é obrigatório")
        return v


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = None
    is_whatsapp: Optional[bool] = None
    document: Optional[str] = None
    address: Optional[str] = None
    invoice_day: Optional[int] = Field(None, ge=1, le=31)


def _client_dict(c: Client, today: Optional[date] = None) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "phone": c.phone,
        "is_whatsapp": c.is_whatsapp,
        "document": c.document,
        "address": c.address,
        "invoice_day": c.invoice_day or 1,
        "total_debt": float(client_balance(c)),
        "status": client_standing(c, today).value,
        "last_invoice_sent_at": c.last_invoice_sent_at.isoformat() if c.last_invoice_sent_at else None,
        "last_invoice_sent_month": c.last_invoice_sent_month,
    }


def _get_or_404(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise HTTPException(404, detail="Cliente não encontrado")
    return client


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("", status_code=201)
def crear_cliente(
    body: ClientCreate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    client = Client(**body.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info(f"Cliente #{client.id} criado: {client.name}")

    bus.publish("client", client.id)
    return _client_dict(client)


@router.get("")
def listar_clientes(db: Session = Depends(get_db)):
    return client_summaries(db)


@router.get("/{client_id}")
def obter_cliente(client_id: int, db: Session = Depends(get_db)):
    return _client_dict(_get_or_404(db, client_id))


@router.patch("/{client_id}")
def atualizar_cliente(
    client_id: int,
    body: ClientUpdate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    client = _get_or_404(db, client_id)
    for campo, valor in body.model_dump(exclude_unset=True).items():
        if campo == "name" and not valor:
            continue
        setattr(client, campo, valor)
    db.commit()
    db.refresh(client)

    bus.publish("client", client.id)
    return _client_dict(client)
