"""
Serviço: Registro de Débitos e Vendas
lanebeleza/services/recorder.py

Fluxo:
  1. Valida cliente e valores
  2. Gera o cronograma (installments.plan_installments)
  3. Grava débito(s) e/ou venda numa única transação
  4. Publica as mudanças no change bus

Regras:
  - Débito em 1x: um registro.
  - Débito parcelado: N registros, todos ou nenhum.
  - Venda no crédito próprio da loja: venda + débito(s) vinculados.
  - Venda em qualquer outra forma: só a venda (paga no ato).

A notificação por WhatsApp NÃO acontece aqui; é responsabilidade de quem
chama, depois do commit (ver notifications.notify_sale).
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lanebeleza.config import STORE_CREDIT_METHOD
from lanebeleza.events import ChangeBus, ChangeEvent, publish_client_change
from lanebeleza.exceptions import NotFoundError, PersistenceError, ValidationError
from lanebeleza.models import Client, Debt, DebtStatus, Sale
from lanebeleza.schemas import ProductLine, products_to_json, products_total
from lanebeleza.services.installments import InstallmentEntry, plan_installments, plan_summary
from lanebeleza.utils.formatters import first_of_month, money

logger = logging.getLogger(__name__)

TOLERANCIA = Decimal("0.01")


@dataclass
class RecordResult:
    kind: str                               # debt | sale
    client_id: int
    total: Decimal
    installments: int = 1
    installment_amount: Optional[Decimal] = None
    first_due_date: Optional[date] = None
    payment_method: Optional[str] = None
    sale_id: Optional[int] = None
    debt_ids: List[int] = field(default_factory=list)


def is_store_credit(payment_method: Optional[str]) -> bool:
    """'Crédito Próprio Loja' (sem diferenciar maiúsculas/espaços)."""
    if not payment_method:
        return False
    return payment_method.strip().casefold() == STORE_CREDIT_METHOD.strip().casefold()


def _get_client(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError(f"Cliente {client_id} não encontrado")
    return client


def _resolve_total(amount, products: List[ProductLine]) -> Decimal:
    """
    Modo produtos: total = soma dos itens (e deve bater com `amount`, se veio).
    Modo valor: total = amount.
    """
    if products:
        soma = products_total(products)
        if amount is not None and abs(money(amount) - soma) > TOLERANCIA:
            raise ValidationError(
                f"Total não coincide: produtos={soma:.2f}, enviado={money(amount):.2f}"
            )
        return soma

    if amount is None:
        raise ValidationError("Informe o valor ou a lista de produtos")
    total = money(amount)
    if total <= 0:
        raise ValidationError("O valor deve ser maior que zero")
    return total


def _describe_products(products: List[ProductLine]) -> Optional[str]:
    nomes = [p.description for p in products if p.description]
    return ", ".join(nomes) if nomes else None


def _build_debts(
    client_id: int,
    plano: List[InstallmentEntry],
    description: Optional[str],
    transaction_date: Optional[date],
    products: List[ProductLine],
    sale_id: Optional[int] = None,
) -> List[Debt]:
    """Uma linha por parcela. Em 1x a descrição fica como veio."""
    produtos_json = products_to_json(products)
    debts = []
    for entry in plano:
        debts.append(Debt(
            client_id=client_id,
            sale_id=sale_id,
            amount=entry.amount,
            description=entry.label if entry.count > 1 else description,
            transaction_date=transaction_date,
            invoice_month=entry.due_month,
            status=DebtStatus.OPEN.value,
            products=produtos_json,
        ))
    return debts


def _commit(db: Session, contexto: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Falha ao gravar {contexto}: {e}", exc_info=True)
        raise PersistenceError(f"Erro ao gravar {contexto}. Nada foi salvo.")


def record_debt(
    db: Session,
    client_id: int,
    amount=None,
    products: Optional[List[ProductLine]] = None,
    installments: int = 1,
    invoice_month: Optional[date] = None,
    description: Optional[str] = None,
    transaction_date: Optional[date] = None,
    bus: Optional[ChangeBus] = None,
) -> RecordResult:
    """
    Registra um débito (1x) ou um parcelamento (N débitos, atômico).

    Raises:
        NotFoundError, ValidationError, PersistenceError
    """
    client = _get_client(db, client_id)
    products = products or []
    total = _resolve_total(amount, products)
    mes = first_of_month(invoice_month or date.today())

    plano = plan_installments(total, installments, mes, description=description)
    debts = _build_debts(client.id, plano, description, transaction_date or date.today(), products)

    db.add_all(debts)
    _commit(db, f"débito do cliente {client.id}")

    resumo = plan_summary(plano)
    resultado = RecordResult(
        kind="debt",
        client_id=client.id,
        total=total,
        installments=resumo.installments,
        installment_amount=resumo.installment_amount,
        first_due_date=resumo.first_due_date,
        debt_ids=[d.id for d in debts],
    )
    logger.info(
        f"Débito registrado: cliente {client.id} | {resumo.installments}x de {resumo.installment_amount} "
        f"| total {total} | ids {resultado.debt_ids}"
    )

    publish_client_change(bus, client.id, *[ChangeEvent("debt", i) for i in resultado.debt_ids])
    return resultado


def record_sale(
    db: Session,
    client_id: int,
    products: List[ProductLine],
    payment_method: str,
    installments: int = 1,
    invoice_month: Optional[date] = None,
    description: Optional[str] = None,
    transaction_date: Optional[date] = None,
    total=None,
    bus: Optional[ChangeBus] = None,
) -> RecordResult:
    """
    Registra uma venda. No crédito próprio da loja gera também o(s)
    débito(s) vinculados; nas demais formas a venda já está paga.

    Raises:
        NotFoundError, ValidationError, PersistenceError
    """
    client = _get_client(db, client_id)
    if not products:
        raise ValidationError("A venda precisa de ao menos um produto")
    if not payment_method or not payment_method.strip():
        raise ValidationError("Forma de pagamento não informada")

    valor_total = _resolve_total(total, products)
    credito = is_store_credit(payment_method)
    parcelas = installments if credito else 1

    plano = None
    if credito:
        mes = first_of_month(invoice_month or date.today())
        plano = plan_installments(
            valor_total, parcelas, mes,
            description=description or _describe_products(products),
        )
    elif installments != 1:
        logger.info(
            f"Venda em '{payment_method}' não é parcelada na loja; ignorando {installments}x"
        )

    sale = Sale(
        client_id=client.id,
        total_amount=valor_total,
        products=products_to_json(products),
        payment_method=payment_method.strip(),
        installments=parcelas,
    )

    debts: List[Debt] = []
    try:
        db.add(sale)
        db.flush()      # obter sale.id sem fechar a transação

        if plano:
            debts = _build_debts(
                client.id, plano,
                description or _describe_products(products),
                transaction_date or date.today(),
                products,
                sale_id=sale.id,
            )
            db.add_all(debts)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Falha ao preparar venda do cliente {client.id}: {e}", exc_info=True)
        raise PersistenceError("Erro ao gravar venda. Nada foi salvo.")

    _commit(db, f"venda do cliente {client.id}")

    resumo = plan_summary(plano) if plano else None
    resultado = RecordResult(
        kind="sale",
        client_id=client.id,
        total=valor_total,
        installments=parcelas,
        installment_amount=resumo.installment_amount if resumo else None,
        first_due_date=resumo.first_due_date if resumo else None,
        payment_method=sale.payment_method,
        sale_id=sale.id,
        debt_ids=[d.id for d in debts],
    )
    logger.info(
        f"Venda #{sale.id} registrada: cliente {client.id} | {sale.payment_method} "
        f"| total {valor_total} | débitos {resultado.debt_ids}"
    )

    publish_client_change(
        bus, client.id,
        ChangeEvent("sale", sale.id),
        *[ChangeEvent("debt", i) for i in resultado.debt_ids],
    )
    return resultado


def delete_sale(db: Session, sale_id: int, bus: Optional[ChangeBus] = None) -> None:
    """Exclui a venda e os débitos gerados por ela (com seus pagamentos)."""
    sale = db.query(Sale).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFoundError(f"Venda {sale_id} não encontrada")

    client_id = sale.client_id
    debt_ids = [d.id for d in sale.debts]
    for debt in list(sale.debts):
        db.delete(debt)
    db.delete(sale)
    _commit(db, f"exclusão da venda {sale_id}")

    logger.info(f"Venda #{sale_id} excluída (débitos {debt_ids})")
    publish_client_change(
        bus, client_id,
        ChangeEvent("sale", sale_id),
        *[ChangeEvent("debt", i) for i in debt_ids],
    )


def delete_debts(db: Session, debt_ids: List[int], bus: Optional[ChangeBus] = None) -> int:
    """Exclui os débitos selecionados (e seus pagamentos). Retorna quantos foram excluídos."""
    debts = db.query(Debt).filter(Debt.id.in_(debt_ids)).all()
    if not debts:
        raise NotFoundError("Nenhum débito encontrado")

    clientes = {d.client_id for d in debts}
    ids = [d.id for d in debts]
    for debt in debts:
        db.delete(debt)
    _commit(db, "exclusão de débitos")

    logger.info(f"Débitos excluídos: {ids}")
    if bus:
        bus.publish_many([ChangeEvent("debt", i) for i in ids])
        for client_id in clientes:
            bus.publish("client", client_id)
        bus.publish("totals")
    return len(ids)
