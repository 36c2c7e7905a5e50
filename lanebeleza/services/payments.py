"""
Serviço: Pagamentos
lanebeleza/services/payments.py

Cada pagamento quita (total ou parcialmente) um débito. O status do
débito não é mantido à mão: é recalculado a partir da soma dos pagamentos.

    open ──(pago < valor)──▶ partial ──(pago >= valor)──▶ paid
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lanebeleza.events import ChangeBus, ChangeEvent, publish_client_change
from lanebeleza.exceptions import NotFoundError, PersistenceError, ValidationError
from lanebeleza.models import Debt, DebtStatus, Payment
from lanebeleza.utils.formatters import money, to_decimal

logger = logging.getLogger(__name__)


def derive_debt_status(amount, paid) -> DebtStatus:
    valor = to_decimal(amount or 0)
    pago = to_decimal(paid or 0)
    if pago <= 0:
        return DebtStatus.OPEN
    if pago >= valor:
        return DebtStatus.PAID
    return DebtStatus.PARTIAL


def paid_total(db: Session, debt_id: int) -> Decimal:
    total = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.debt_id == debt_id
    ).scalar()
    return money(total or 0)


def refresh_debt_status(db: Session, debt: Debt) -> DebtStatus:
    db.flush()
    status = derive_debt_status(debt.amount, paid_total(db, debt.id))
    debt.status = status.value
    return status


def register_payment(
    db: Session,
    debt_id: int,
    amount,
    payment_date: Optional[date] = None,
    payment_method: str = "manual",
    bus: Optional[ChangeBus] = None,
) -> Payment:
    """
    Registra um pagamento para o débito. O mês de fatura é copiado do débito.

    Raises:
        ValidationError: valor <= 0
        NotFoundError:   débito inexistente
        PersistenceError
    """
    valor = money(amount)
    if valor <= 0:
        raise ValidationError("O valor deve ser maior que zero")

    debt = db.query(Debt).filter(Debt.id == debt_id).first()
    if not debt:
        raise NotFoundError(f"Débito {debt_id} não encontrado")

    payment = Payment(
        debt_id=debt.id,
        amount=valor,
        payment_date=payment_date or date.today(),
        payment_method=payment_method or "manual",
        invoice_month=debt.invoice_month,
    )

    try:
        db.add(payment)
        status = refresh_debt_status(db, debt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Falha ao gravar pagamento do débito {debt_id}: {e}", exc_info=True)
        raise PersistenceError("Erro ao registrar pagamento")

    logger.info(f"Pagamento #{payment.id} de {valor} no débito {debt.id} → {status.value}")
    publish_client_change(
        bus, debt.client_id,
        ChangeEvent("payment", payment.id),
        ChangeEvent("debt", debt.id),
    )
    return payment


def delete_payment(db: Session, payment_id: int, bus: Optional[ChangeBus] = None) -> None:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError(f"Pagamento {payment_id} não encontrado")

    debt = payment.debt
    try:
        db.delete(payment)
        status = refresh_debt_status(db, debt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Falha ao excluir pagamento {payment_id}: {e}", exc_info=True)
        raise PersistenceError("Erro ao excluir pagamento")

    logger.info(f"Pagamento #{payment_id} excluído; débito {debt.id} → {status.value}")
    publish_client_change(
        bus, debt.client_id,
        ChangeEvent("payment", payment_id),
        ChangeEvent("debt", debt.id),
    )
