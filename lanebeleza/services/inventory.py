"""
Serviço: Produtos e Estoque
lanebeleza/services/inventory.py

Cadastro de produtos e movimentações de estoque (entrada / saída).
A quantidade em estoque só muda por movimentação.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lanebeleza.events import ChangeBus
from lanebeleza.exceptions import NotFoundError, PersistenceError, ValidationError
from lanebeleza.models import MovementType, Product, StockMovement
from lanebeleza.utils.formatters import money

logger = logging.getLogger(__name__)

CAMPOS_EDITAVEIS = (
    "name", "description", "price", "cost_price", "minimum_stock",
    "image_url", "sku", "barcode", "category",
)


def is_low_stock(product: Product) -> bool:
    return (product.stock_quantity or 0) <= (product.minimum_stock or 0)


def product_to_dict(p: Product) -> Dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "price": float(p.price or 0),
        "cost_price": float(p.cost_price or 0),
        "stock_quantity": p.stock_quantity or 0,
        "minimum_stock": p.minimum_stock or 0,
        "low_stock": is_low_stock(p),
        "image_url": p.image_url,
        "sku": p.sku,
        "barcode": p.barcode,
        "category": p.category,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }


def _validar_campos(dados: Dict) -> Dict:
    if "name" in dados and not (dados["name"] or "").strip():
        raise ValidationError("Nome do produto é obrigatório")
    for campo in ("price", "cost_price"):
        if campo in dados and dados[campo] is not None:
            dados[campo] = money(dados[campo])
            if dados[campo] < 0:
                raise ValidationError(f"{campo} não pode ser negativo")
    if "minimum_stock" in dados and dados["minimum_stock"] is not None and dados["minimum_stock"] < 0:
        raise ValidationError("Estoque mínimo não pode ser negativo")
    return dados


def _commit(db: Session, contexto: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Falha ao gravar {contexto}: {e}", exc_info=True)
        raise PersistenceError(f"Erro ao gravar {contexto}")


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Produto {product_id} não encontrado")
    return product


def list_products(
    db: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock_only: bool = False,
) -> List[Product]:
    q = db.query(Product)
    if search:
        termo = f"%{search.strip()}%"
        q = q.filter(or_(
            Product.name.ilike(termo),
            Product.sku.ilike(termo),
            Product.barcode.ilike(termo),
        ))
    if category:
        q = q.filter(Product.category == category)
    if low_stock_only:
        q = q.filter(Product.stock_quantity <= Product.minimum_stock)
    return q.order_by(Product.name).all()


def create_product(db: Session, bus: Optional[ChangeBus] = None, **dados) -> Product:
    dados = _validar_campos({k: v for k, v in dados.items() if k in CAMPOS_EDITAVEIS + ("stock_quantity",)})
    if "name" not in dados:
        raise ValidationError("Nome do produto é obrigatório")
    estoque_inicial = dados.pop("stock_quantity", 0) or 0
    if estoque_inicial < 0:
        raise ValidationError("Estoque inicial não pode ser negativo")

    product = Product(stock_quantity=estoque_inicial, **dados)
    db.add(product)
    _commit(db, "produto")
    logger.info(f"Produto #{product.id} criado: {product.name}")

    if bus:
        bus.publish("product", product.id)
    return product


def update_product(db: Session, product_id: int, bus: Optional[ChangeBus] = None, **dados) -> Product:
    """Atualiza os campos enviados. stock_quantity não é editável aqui."""
    product = get_product(db, product_id)
    dados = _validar_campos({k: v for k, v in dados.items() if k in CAMPOS_EDITAVEIS})
    for campo, valor in dados.items():
        setattr(product, campo, valor)
    _commit(db, f"produto {product_id}")

    if bus:
        bus.publish("product", product.id)
    return product


def delete_product(db: Session, product_id: int, bus: Optional[ChangeBus] = None) -> None:
    product = get_product(db, product_id)
    db.delete(product)
    _commit(db, f"exclusão do produto {product_id}")
    logger.info(f"Produto #{product_id} excluído")

    if bus:
        bus.publish("product", product_id)


def register_stock_movement(
    db: Session,
    product_id: int,
    type: str,
    quantity: int,
    description: Optional[str] = None,
    bus: Optional[ChangeBus] = None,
) -> StockMovement:
    """
    Entrada soma, saída subtrai. Saída maior que o estoque é recusada.

    Raises:
        ValidationError, NotFoundError, PersistenceError
    """
    try:
        tipo = MovementType(type)
    except ValueError:
        raise ValidationError("Tipo de movimentação deve ser 'entrada' ou 'saída'")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Quantidade é obrigatória (mínimo 1)")

    product = get_product(db, product_id)
    atual = product.stock_quantity or 0

    if tipo == MovementType.SAIDA:
        if quantity > atual:
            raise ValidationError(
                f"Estoque insuficiente para {product.name}: disponível {atual}, solicitado {quantity}"
            )
        product.stock_quantity = atual - quantity
    else:
        product.stock_quantity = atual + quantity

    movement = StockMovement(
        product_id=product.id,
        quantity=quantity,
        type=tipo.value,
        description=(description or "").strip() or None,
    )
    db.add(movement)
    _commit(db, f"movimentação do produto {product_id}")

    logger.info(
        f"Estoque {tipo.value} de {quantity} em '{product.name}': {atual} → {product.stock_quantity}"
    )
    if is_low_stock(product):
        logger.warning(f"Produto '{product.name}' com estoque baixo ({product.stock_quantity})")

    if bus:
        bus.publish("product", product.id)
    return movement


def list_movements(db: Session, product_id: int) -> List[StockMovement]:
    get_product(db, product_id)
    return (
        db.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .all()
    )
