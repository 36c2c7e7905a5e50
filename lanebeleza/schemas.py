"""
Schemas compartilhados entre routers e serviços.

O campo `products` (débitos e vendas) é gravado como JSON; aqui fica o
tipo explícito usado na entrada e na leitura.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError as PydanticValidationError, field_validator

from lanebeleza.exceptions import ValidationError
from lanebeleza.utils.formatters import money


class ProductLine(BaseModel):
    """Item de venda: descrição livre + valor."""
    description: str = ""
    value: Decimal = Field(..., gt=0)

    @field_validator("description", mode="before")
    @classmethod
    def _descricao(cls, v):
        return (v or "").strip()

    @field_validator("value")
    @classmethod
    def _centavos(cls, v):
        return money(v)

    def to_json(self) -> dict:
        return {"description": self.description, "value": float(self.value)}


_product_list = TypeAdapter(List[ProductLine])


def parse_products(raw: Optional[Any]) -> List[ProductLine]:
    """
    Valida a lista de produtos vinda do banco ou do request.
    None → []; qualquer item inválido → ValidationError.
    """
    if raw is None:
        return []
    try:
        return _product_list.validate_python(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Lista de produtos inválida: {e.errors()[0].get('msg')}")


def products_total(products: List[ProductLine]) -> Decimal:
    return sum((p.value for p in products), Decimal("0"))


def products_to_json(products: List[ProductLine]) -> Optional[list]:
    return [p.to_json() for p in products] if products else None
