"""
Serviço: Notificações por WhatsApp
lanebeleza/services/notifications.py

- Mensagem de resumo de compra (produtos, total, forma de pagamento e,
  se parcelado, Nx de R$ ... e 1º vencimento)
- Lembrete de fatura do mês
- Envio pelo gateway (POST {number, text} com header `apikey`)

O envio da mensagem de compra é best-effort: acontece depois do commit,
falhas são logadas e registradas em notification_logs, nunca propagadas.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import List, Optional, Union

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lanebeleza.config import (
    DEFAULT_COUNTRY_CODE, STORE_CREDIT_METHOD, STORE_NAME,
    WHATSAPP_API_KEY, WHATSAPP_API_URL, WHATSAPP_TIMEOUT,
)
from lanebeleza.exceptions import DeliveryError, NotFoundError, ValidationError
from lanebeleza.models import Client, NotificationLog, NotificationStatus
from lanebeleza.schemas import ProductLine
from lanebeleza.services.recorder import RecordResult
from lanebeleza.utils.formatters import format_currency, format_date

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════
# TELEFONE
# ═══════════════════════════════════════════════════════════

def normalize_phone(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Só dígitos, com DDI. Ex: '(11) 91234-5678' → '5511912345678'.
    O DDI só é prefixado se o número ainda não começa com ele.
    """
    digitos = re.sub(r"\D", "", phone or "")
    if not digitos:
        raise ValidationError("Telefone do cliente não informado")
    if not digitos.startswith(country_code):
        digitos = f"{country_code}{digitos}"
    return digitos


# ═══════════════════════════════════════════════════════════
# MENSAGENS
# ═══════════════════════════════════════════════════════════

def compose_sale_message(
    customer_name: str,
    products: List[ProductLine],
    total,
    payment_method: str,
    installments: Optional[int] = None,
    installment_amount=None,
    first_due_date: Optional[Union[date, str]] = None,
) -> str:
    lista = "\n".join(f"• {p.description}: {format_currency(p.value)}" for p in products)

    detalhes = f"Forma de pagamento: {payment_method}"
    if installments and installments > 1:
        detalhes += f"\nParcelamento: {installments}x de {format_currency(installment_amount or 0)}"
        if first_due_date:
            venc = first_due_date if isinstance(first_due_date, str) else format_date(first_due_date)
            detalhes += f"\nVencimento da 1ª parcela: {venc}"

    return (
        f"Olá {customer_name}! 🛍️\n\n"
        f"Muito obrigado pela sua compra! Aqui está o resumo da sua compra:\n\n"
        f"*PRODUTOS:*\n{lista}\n\n"
        f"*TOTAL:* {format_currency(total)}\n\n"
        f"{detalhes}\n\n"
        f"Agradecemos a preferência! 🙏"
    )


def compose_reminder(
    client_name: str,
    due_date: Union[date, str],
    invoice_amount,
    total_debt,
    store_name: str = STORE_NAME,
) -> str:
    vencimento = due_date if isinstance(due_date, str) else format_date(due_date)
    fatura = format_currency(invoice_amount)
    total = format_currency(total_debt)

    return (
        f"Olá, {client_name}!\n\n"
        f"Gostaria de lembrá-lo que o nosso combinado para este mês vence no dia *{vencimento}*.\n\n"
        f"Você pode efetuar o pagamento da fatura deste mês no valor de *{fatura}*. "
        f"Caso prefira, também tem a opção de quitar um valor maior, contribuindo para reduzir seu débito total, "
        f"que atualmente está em *{total}*.\n\n"
        f"👉 *Opções de Pagamento*:\n"
        f"- Mínimo (Fatura deste mês): {fatura}\n"
        f"- Total Devido: {total}\n\n"
        f"Quanto maior o valor pago, mais próximo você fica de liquidar seu débito total! 😊\n\n"
        f"Caso tenha dúvidas ou precise de ajuda, é só responder essa mensagem aqui no WhatsApp "
        f"que estamos à disposição!\n\n"
        f"Atenciosamente,\n*{store_name}*"
    )


# ═══════════════════════════════════════════════════════════
# GATEWAY
# ═══════════════════════════════════════════════════════════

class WhatsAppClient:
    """Cliente do gateway de WhatsApp. Sem retries: uma tentativa por mensagem."""

    def __init__(
        self,
        api_url: str = WHATSAPP_API_URL,
        api_key: str = WHATSAPP_API_KEY,
        timeout: float = WHATSAPP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def esta_configurado(self) -> bool:
        return bool(self.api_url and self.api_key)

    async def send_text(self, phone: str, text: str) -> None:
        """
        Raises:
            ValidationError: telefone vazio
            DeliveryError:   gateway não configurado, status não-2xx, timeout ou erro de rede
        """
        numero = normalize_phone(phone)
        if not self.esta_configurado():
            raise DeliveryError("Gateway de WhatsApp não configurado")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json={"number": numero, "text": text},
                    headers={
                        "Content-Type": "application/json",
                        "apikey": self.api_key,
                    },
                )
        except httpx.TimeoutException:
            raise DeliveryError("Timeout conectando ao WhatsApp")
        except httpx.RequestError as e:
            raise DeliveryError(f"Erro de conexão com o WhatsApp: {e}")

        if not response.is_success:
            raise DeliveryError(
                f"WhatsApp API error: {response.status_code} {response.reason_phrase}"
            )

        logger.info(f"WhatsApp enviado para {numero} ({response.status_code})")


def get_whatsapp_client() -> WhatsAppClient:
    return WhatsAppClient()


# ═══════════════════════════════════════════════════════════
# ENVIO PÓS-COMMIT (best-effort)
# ═══════════════════════════════════════════════════════════

def _log_notification(
    db: Session,
    client: Client,
    kind: str,
    entity_id: Optional[int],
    status: NotificationStatus,
    error: Optional[str] = None,
) -> None:
    """Grava o resultado no log de auditoria. Falha aqui também só vira log."""
    try:
        db.add(NotificationLog(
            client_id=client.id,
            kind=kind,
            entity_id=entity_id,
            phone=client.phone,
            status=status.value,
            error=error[:500] if error else None,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Não foi possível registrar notificação do cliente {client.id}: {e}")


async def notify_sale(
    db: Session,
    client: Client,
    result: RecordResult,
    products: List[ProductLine],
    payment_method: Optional[str],
    sender: WhatsAppClient,
) -> NotificationStatus:
    """
    Envia o resumo da compra. Chamado DEPOIS do commit da venda/débito;
    nunca lança exceção.
    """
    kind = result.kind
    entity_id = result.sale_id or (result.debt_ids[0] if result.debt_ids else None)

    if not client.phone or client.is_whatsapp is False:
        logger.info(f"Cliente {client.id} sem WhatsApp; resumo de {kind} #{entity_id} não enviado")
        _log_notification(db, client, kind, entity_id, NotificationStatus.SKIPPED, "Cliente sem WhatsApp")
        return NotificationStatus.SKIPPED

    try:
        texto = compose_sale_message(
            customer_name=client.name,
            products=products,
            total=result.total,
            payment_method=payment_method or STORE_CREDIT_METHOD,
            installments=result.installments,
            installment_amount=result.installment_amount,
            first_due_date=result.first_due_date,
        )
        await sender.send_text(client.phone, texto)
    except (DeliveryError, ValidationError) as e:
        logger.warning(f"Falha ao enviar resumo de {kind} #{entity_id} ao cliente {client.id}: {e.message}")
        _log_notification(db, client, kind, entity_id, NotificationStatus.FAILED, e.message)
        return NotificationStatus.FAILED
    except Exception as e:
        logger.error(f"Erro inesperado no WhatsApp ({kind} #{entity_id}): {e}", exc_info=True)
        _log_notification(db, client, kind, entity_id, NotificationStatus.FAILED, str(e))
        return NotificationStatus.FAILED

    _log_notification(db, client, kind, entity_id, NotificationStatus.SENT)
    return NotificationStatus.SENT


async def send_invoice_reminder(
    db: Session,
    sender: WhatsAppClient,
    client_id: int,
    due_date: Union[date, str],
    invoice_amount,
    total_debt,
    invoice_month: Optional[str] = None,
) -> None:
    """
    Lembrete de fatura. Aqui a entrega É o resultado: DeliveryError sobe.
    Depois de enviado, marca last_invoice_sent_* no cliente (best-effort).

    Raises:
        NotFoundError, ValidationError, DeliveryError
    """
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError("Client not found")
    if not client.phone:
        raise ValidationError("Client phone number not found")

    texto = compose_reminder(client.name, due_date, invoice_amount, total_debt)
    try:
        await sender.send_text(client.phone, texto)
    except DeliveryError as e:
        _log_notification(db, client, "invoice_reminder", None, NotificationStatus.FAILED, e.message)
        raise

    try:
        client.last_invoice_sent_at = datetime.now(timezone.utc)
        client.last_invoice_sent_month = invoice_month
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Lembrete enviado mas não foi possível marcar o cliente {client_id}: {e}")

    _log_notification(db, client, "invoice_reminder", None, NotificationStatus.SENT)
    logger.info(f"Lembrete de fatura enviado ao cliente {client_id} ({invoice_month})")
