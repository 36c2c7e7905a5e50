"""
Formatação de valores e datas (pt-BR)
lanebeleza/utils/formatters.py

Funções puras: moeda, datas, mês de fatura e valores por extenso
(usados na nota promissória).
"""
import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from dateutil.relativedelta import relativedelta

from lanebeleza.exceptions import ValidationError

CENTAVOS = Decimal("0.01")

MESES_NOME = {
    1: "janeiro", 2: "fevereiro", 3: "março", 4: "abril", 5: "maio", 6: "junho",
    7: "julho", 8: "agosto", 9: "setembro", 10: "outubro", 11: "novembro",
    12: "dezembro",
}

_UNIDADES = ["zero", "um", "dois", "três", "quatro", "cinco", "seis", "sete", "oito", "nove"]
_DEZ_A_DEZENOVE = [
    "dez", "onze", "doze", "treze", "quatorze", "quinze",
    "dezesseis", "dezessete", "dezoito", "dezenove",
]
_DEZENAS = ["", "", "vinte", "trinta", "quarenta", "cinquenta", "sessenta", "setenta", "oitenta", "noventa"]
_CENTENAS = [
    "", "cento", "duzentos", "trezentos", "quatrocentos", "quinhentos",
    "seiscentos", "setecentos", "oitocentos", "novecentos",
]

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Converte para Decimal passando por str (evita lixo de float)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Number) -> Decimal:
    """Decimal arredondado em centavos."""
    return to_decimal(value).quantize(CENTAVOS, ROUND_HALF_UP)


def format_currency(value: Number) -> str:
    """
    Formata em reais.
    Ex: 1234.5 → 'R$ 1.234,50' ; -10 → '-R$ 10,00'
    """
    valor = money(value or 0)
    sinal = "-" if valor < 0 else ""
    texto = f"{abs(valor):,.2f}"  # 1,234.50
    texto = texto.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sinal}R$ {texto}"


def format_date(d) -> str:
    """dd/MM/yyyy"""
    if not d:
        return "—"
    return d.strftime("%d/%m/%Y")


def format_month_year(d) -> str:
    """MM/yyyy"""
    if not d:
        return "-"
    return d.strftime("%m/%Y")


def month_name_year(d) -> str:
    """'janeiro/2024'"""
    return f"{MESES_NOME[d.month]}/{d.year}"


def first_of_month(d: date) -> date:
    if isinstance(d, datetime):
        d = d.date()
    return d.replace(day=1)


def add_months(d: date, months: int) -> date:
    return d + relativedelta(months=months)


def parse_month(value: Union[str, date, None]) -> date:
    """
    Aceita 'YYYY-MM', 'YYYY-MM-DD' ou date; retorna o dia 1 do mês.
    """
    if isinstance(value, date):
        return first_of_month(value)
    if not value:
        raise ValidationError("Mês de fatura não informado")

    m = re.match(r"^(\d{4})-(\d{2})(?:-\d{2})?$", value.strip())
    if not m:
        raise ValidationError(f"Mês de fatura inválido: '{value}'")

    ano, mes = int(m.group(1)), int(m.group(2))
    if not 1 <= mes <= 12:
        raise ValidationError(f"Mês de fatura inválido: '{value}'")
    return date(ano, mes, 1)


# ═══════════════════════════════════════════════════════════
# POR EXTENSO
# ═══════════════════════════════════════════════════════════

def _ate_mil(num: int) -> str:
    if num < 10:
        return _UNIDADES[num]
    if num < 20:
        return _DEZ_A_DEZENOVE[num - 10]
    if num < 100:
        dezena, unidade = divmod(num, 10)
        return _DEZENAS[dezena] if unidade == 0 else f"{_DEZENAS[dezena]} e {_UNIDADES[unidade]}"
    if num == 100:
        return "cem"
    centena, resto = divmod(num, 100)
    if resto == 0:
        return _CENTENAS[centena]
    return f"{_CENTENAS[centena]} e {_ate_mil(resto)}"


_ESCALAS = (
    (1_000_000_000, "bilhão", "bilhões"),
    (1_000_000, "milhão", "milhões"),
    (1000, "mil", "mil"),
    (1, "", ""),
)
LIMITE_POR_EXTENSO = 999_999_999_999


def number_to_words(num: int) -> str:
    """
    Número inteiro por extenso, de 0 a 999.999.999.999.
    Ex: 21 → 'vinte e um' ; 1500 → 'mil e quinhentos' ;
        1_500_000 → 'um milhão e quinhentos mil'
    """
    if num < 0 or num > LIMITE_POR_EXTENSO:
        raise ValidationError(f"Valor fora do intervalo por extenso: {num}")
    if num < 1000:
        return _ate_mil(num)

    grupos = []                 # (valor do grupo, texto)
    resto = num
    for escala, singular, plural in _ESCALAS:
        qtd, resto = divmod(resto, escala)
        if not qtd:
            continue
        if escala == 1:
            texto = _ate_mil(qtd)
        elif escala == 1000:
            texto = "mil" if qtd == 1 else f"{_ate_mil(qtd)} mil"
        else:
            texto = f"{_ate_mil(qtd)} {singular if qtd == 1 else plural}"
        grupos.append((qtd, texto))

    # "mil e cem", "um milhão e quinhentos mil", mas "mil duzentos e trinta"
    *anteriores, (ultimo, texto_ultimo) = grupos
    if not anteriores:
        return texto_ultimo
    conector = " e " if ultimo < 100 or ultimo % 100 == 0 else " "
    return " ".join(t for _, t in anteriores) + conector + texto_ultimo


def money_in_words(value: Number) -> str:
    """
    Valor em reais por extenso.
    Ex: 300.50 → 'trezentos reais e cinquenta centavos'
    """
    valor = money(value)
    reais = int(valor)
    centavos = int((valor - reais) * 100)

    partes = []
    if reais:
        moeda = "real" if reais == 1 else "reais"
        if reais % 1_000_000 == 0:
            moeda = "de reais"          # "um milhão de reais"
        partes.append(f"{number_to_words(reais)} {moeda}")
    if centavos:
        partes.append(f"{number_to_words(centavos)} {'centavo' if centavos == 1 else 'centavos'}")
    if not partes:
        return "zero reais"
    return " e ".join(partes)


def date_in_words(month: date, day: int) -> str:
    """
    'dez de janeiro de 2024' para o dia `day` do mês `month`.
    O dia é limitado ao último dia do mês.
    """
    ultimo = (first_of_month(month) + relativedelta(months=1, days=-1)).day
    dia = max(1, min(day or 1, ultimo))
    return f"{number_to_words(dia)} de {MESES_NOME[month.month]} de {month.year}"
