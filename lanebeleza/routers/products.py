"""
Módulo: Produtos e Estoque
lanebeleza/routers/products.py
"""
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from lanebeleza.database import get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.services import inventory
from lanebeleza.services.inventory import product_to_dict

router = APIRouter(prefix="/api/products", tags=["Produtos"])


# ============================================================
# SCHEMAS
# ============================================================

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    cost_price: Decimal = Decimal("0")
    stock_quantity: int = 0
    minimum_stock: int = 0
    image_url: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    category: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    minimum_stock: Optional[int] = None
    image_url: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    category: Optional[str] = None


class MovementCreate(BaseModel):
    type: Literal["entrada", "saída"]
    quantity: int
    description: Optional[str] = None


# ============================================================
# ENDPOINTS
# ============================================================

@router.get("")
def listar_produtos(
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = Query(False),
    db: Session = Depends(get_db),
):
    produtos = inventory.list_products(db, search=search, category=category, low_stock_only=low_stock)
    return [product_to_dict(p) for p in produtos]


@router.post("", status_code=201)
def criar_produto(
    body: ProductCreate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    product = inventory.create_product(db, bus=bus, **body.model_dump())
    return product_to_dict(product)


@router.get("/{product_id}")
def obter_produto(product_id: int, db: Session = Depends(get_db)):
    return product_to_dict(inventory.get_product(db, product_id))


@router.patch("/{product_id}")
def atualizar_produto(
    product_id: int,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    product = inventory.update_product(db, product_id, bus=bus, **body.model_dump(exclude_unset=True))
    return product_to_dict(product)


@router.delete("/{product_id}")
def excluir_produto(
    product_id: int,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    inventory.delete_product(db, product_id, bus=bus)
    return {"success": True}


@router.get("/{product_id}/movements")
def listar_movimentacoes(product_id: int, db: Session = Depends(get_db)):
    return [
        {
            "id": m.id,
            "product_id": m.product_id,
            "quantity": m.quantity,
            "type": m.type,
            "description": m.description,
            "created_at": m.created_at.isoformat() if m.created_at else None,
        }
        for m in inventory.list_movements(db, product_id)
    ]


@router.post("/{product_id}/movements", status_code=201)
def registrar_movimentacao(
    product_id: int,
    body: MovementCreate,
    db: Session = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    inventory.register_stock_movement(
        db, product_id, type=body.type, quantity=body.quantity,
        description=body.description, bus=bus,
    )
    return product_to_dict(inventory.get_product(db, product_id))
