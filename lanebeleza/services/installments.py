"""
Serviço: Parcelamento de Débitos
lanebeleza/services/installments.py

Gera o cronograma de parcelas de um débito (ou de uma venda no crédito
próprio da loja): valor por parcela, mês de fatura e descrição.

Função pura: sem banco, sem rede.

Política de centavos (INSTALLMENT_REMAINDER_POLICY):
  - "drop": toda parcela recebe total/N arredondado; a diferença se perde
            (ex: 100,00 em 3x → 3 x 33,33 = 99,99). Comportamento histórico.
  - "last": as parcelas recebem total/N truncado e a última absorve a
            diferença (soma == total; ex: 200,00 em 3x → 66,66 + 66,66 + 66,68).
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_DOWN
from typing import List, Optional

from lanebeleza.config import INSTALLMENT_REMAINDER_POLICY, MAX_INSTALLMENTS
from lanebeleza.exceptions import ValidationError
from lanebeleza.utils.formatters import (
    CENTAVOS, add_months, first_of_month, format_currency, money, to_decimal,
)

POLITICAS = ("drop", "last")
DESCRICAO_PADRAO = "Parcela"


@dataclass
class InstallmentEntry:
    number: int             # 1..count
    count: int
    amount: Decimal
    due_month: date         # sempre dia 1
    label: str


@dataclass
class PlanSummary:
    installments: int
    installment_amount: Decimal
    first_due_date: Optional[date]
    total: Decimal
    entries: List[InstallmentEntry] = field(default_factory=list)


def build_label(
    description: Optional[str],
    origin_label: str,
    number: int,
    count: int,
) -> str:
    """'Blusa (Origem - R$ 300,00) (1/3)'"""
    base = description.strip() if description and description.strip() else DESCRICAO_PADRAO
    return f"{base} (Origem - {origin_label}) ({number}/{count})"


def plan_installments(
    total,
    count: int,
    start_month: date,
    description: Optional[str] = None,
    original_total_label: Optional[str] = None,
    remainder_policy: Optional[str] = None,
) -> List[InstallmentEntry]:
    """
    Divide `total` em `count` parcelas mensais a partir de `start_month`.

    Raises:
        ValidationError: count fora de [1, MAX_INSTALLMENTS], total <= 0
            ou parcela menor que R$ 0,01.
    """
    politica = remainder_policy or INSTALLMENT_REMAINDER_POLICY
    if politica not in POLITICAS:
        raise ValidationError(f"Política de centavos desconhecida: '{politica}'")

    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError("O número de parcelas deve ser inteiro")
    if count < 1 or count > MAX_INSTALLMENTS:
        raise ValidationError(f"O número de parcelas deve ser entre 1 e {MAX_INSTALLMENTS}")

    total = to_decimal(total)
    if total <= 0:
        raise ValidationError("O valor deve ser maior que zero")

    mes_inicial = first_of_month(start_month)
    origem = original_total_label or format_currency(total)

    # "last": quociente truncado, a sobra (>= 0) vai para a última parcela
    if politica == "last":
        valor_parcela = (total / count).quantize(CENTAVOS, ROUND_DOWN)
    else:
        valor_parcela = money(total / count)
    if valor_parcela < CENTAVOS:
        raise ValidationError(
            f"{format_currency(total)} não pode ser dividido em {count} parcelas "
            f"(mínimo de {format_currency(CENTAVOS)} por parcela)"
        )

    parcelas = []
    for i in range(count):
        valor = valor_parcela
        if politica == "last" and i == count - 1:
            valor = money(total) - valor_parcela * (count - 1)

        parcelas.append(InstallmentEntry(
            number=i + 1,
            count=count,
            amount=valor,
            due_month=add_months(mes_inicial, i),
            label=build_label(description, origem, i + 1, count),
        ))

    return parcelas


def plan_summary(entries: List[InstallmentEntry]) -> PlanSummary:
    """Resumo usado pela mensagem de venda (Nx de R$ ..., 1º vencimento)."""
    if not entries:
        return PlanSummary(installments=0, installment_amount=Decimal("0"),
                           first_due_date=None, total=Decimal("0"))
    return PlanSummary(
        installments=len(entries),
        installment_amount=entries[0].amount,
        first_due_date=entries[0].due_month,
        total=sum((e.amount for e in entries), Decimal("0")),
        entries=entries,
    )
