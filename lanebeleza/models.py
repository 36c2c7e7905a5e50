"""
Módulo: Modelos SQLAlchemy
lanebeleza/models.py

Clientes, débitos (um registro por parcela), pagamentos, vendas,
produtos/estoque e o log de notificações enviadas.

Todo débito, venda e pagamento pertence a um cliente via FK.
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Boolean, Text, DateTime, Date, Numeric, JSON,
    ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lanebeleza.database import Base


# ═══════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════

class DebtStatus(str, enum.Enum):
    """Estado de pagamento do débito (recalculado a partir dos pagamentos)."""
    OPEN = "open"           # Nenhum pagamento
    PARTIAL = "partial"     # Pago em parte
    PAID = "paid"           # Quitado


class ClientStanding(str, enum.Enum):
    """Situação do cliente exibida na lista."""
    EM_DIA = "em_dia"
    PENDENTE = "pendente"
    ATRASADO = "atrasado"
    ATRASADO_PARCIAL = "atrasado_parcial"


class MovementType(str, enum.Enum):
    ENTRADA = "entrada"
    SAIDA = "saída"


class NotificationStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


# ═══════════════════════════════════════════════════════════
# CLIENTES
# ═══════════════════════════════════════════════════════════

class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(30), nullable=True)            # obrigatório para notificar
    is_whatsapp = Column(Boolean, default=True)
    document = Column(String(30), nullable=True)         # CPF/CNPJ (nota promissória)
    address = Column(String(300), nullable=True)
    invoice_day = Column(Integer, default=1)             # dia de vencimento da fatura

    # Último lembrete de fatura enviado
    last_invoice_sent_at = Column(DateTime(timezone=True), nullable=True)
    last_invoice_sent_month = Column(String(7), nullable=True)   # 'YYYY-MM'

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    debts = relationship("Debt", back_populates="client", order_by="Debt.invoice_month")
    sales = relationship("Sale", back_populates="client")


# ═══════════════════════════════════════════════════════════
# DÉBITOS (uma linha por parcela)
# ═══════════════════════════════════════════════════════════

class Debt(Base):
    """
    Valor devido por um cliente.

    Parcelamentos geram N linhas, uma por mês de fatura, com a descrição
    "(i/N)" e o valor de origem. O status é derivado dos pagamentos.
    """
    __tablename__ = "debts"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_debts_amount_positive"),
        Index("ix_debts_client_month", "client_id", "invoice_month"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=True)   # venda de origem

    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=True)
    invoice_month = Column(Date, nullable=True)          # sempre dia 1
    status = Column(String(20), default=DebtStatus.OPEN.value, nullable=False)
    products = Column(JSON, nullable=True)               # [{"description", "value"}]

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="debts")
    payments = relationship(
        "Payment", back_populates="debt", cascade="all, delete-orphan",
        order_by="Payment.payment_date",
    )
    sale = relationship("Sale", back_populates="debts")


# ═══════════════════════════════════════════════════════════
# PAGAMENTOS
# ═══════════════════════════════════════════════════════════

class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    debt_id = Column(Integer, ForeignKey("debts.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(50), default="manual")
    invoice_month = Column(Date, nullable=True)          # copiado do débito

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    debt = relationship("Debt", back_populates="payments")


# ═══════════════════════════════════════════════════════════
# VENDAS
# ═══════════════════════════════════════════════════════════

class Sale(Base):
    """
    Venda no balcão. Só tem débito vinculado quando a forma de pagamento
    é o crédito próprio da loja.
    """
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)

    total_amount = Column(Numeric(12, 2), nullable=False)
    products = Column(JSON, nullable=False)              # [{"description", "value"}]
    payment_method = Column(String(50), nullable=False)
    installments = Column(Integer, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    client = relationship("Client", back_populates="sales")
    debts = relationship("Debt", back_populates="sale", order_by="Debt.invoice_month")


# ═══════════════════════════════════════════════════════════
# PRODUTOS / ESTOQUE
# ═══════════════════════════════════════════════════════════

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    cost_price = Column(Numeric(12, 2), nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
    sku = Column(String(60), nullable=True)
    barcode = Column(String(60), nullable=True)
    category = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    movements = relationship(
        "StockMovement", back_populates="product", cascade="all, delete-orphan",
    )


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    type = Column(String(10), nullable=False)            # entrada | saída
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="movements")


# ═══════════════════════════════════════════════════════════
# LOG DE NOTIFICAÇÕES (auditoria, separado da transação)
# ═══════════════════════════════════════════════════════════

class NotificationLog(Base):
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    kind = Column(String(30), nullable=False)            # sale | debt | invoice_reminder
    entity_id = Column(Integer, nullable=True)           # venda/débito de origem
    phone = Column(String(30), nullable=True)
    status = Column(String(20), nullable=False)          # sent | failed | skipped
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
