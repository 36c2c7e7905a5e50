"""
Configuração da aplicação
lanebeleza/config.py

Tudo vem de variáveis de ambiente (.env na raiz do projeto).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lanebeleza.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ── WhatsApp (gateway externo) ──
WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL", "")
WHATSAPP_API_KEY = os.getenv("WHATSAPP_API_KEY", "")
WHATSAPP_TIMEOUT = float(os.getenv("WHATSAPP_TIMEOUT", "10"))
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "55")

# ── Loja ──
STORE_NAME = os.getenv("STORE_NAME", "Lane&Beleza")
STORE_CREDIT_METHOD = os.getenv("STORE_CREDIT_METHOD", "Crédito Próprio Loja")

# ── Parcelamento ──
# "drop": todas as parcelas recebem o mesmo quociente (centavos restantes se perdem)
# "last": a última parcela absorve a diferença
INSTALLMENT_REMAINDER_POLICY = os.getenv("INSTALLMENT_REMAINDER_POLICY", "drop")
MAX_INSTALLMENTS = int(os.getenv("MAX_INSTALLMENTS", "48"))

# ── Nota promissória ──
PROMISSORY_PAYEE = os.getenv("PROMISSORY_PAYEE", STORE_NAME)
PROMISSORY_CITY = os.getenv("PROMISSORY_CITY", "CARUARU")
