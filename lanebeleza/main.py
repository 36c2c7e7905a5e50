import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lanebeleza.config import LOG_LEVEL
from lanebeleza.database import init_db
from lanebeleza.exceptions import GestaoError
from lanebeleza.routers import clients, debts, functions, invoices, payments, products, sales
from lanebeleza.routers.dashboard import router as dashboard_router, ws_dashboard

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Lane&Beleza Gestão", lifespan=lifespan)


# --- Erros de domínio → HTTP ---
@app.exception_handler(GestaoError)
async def gestao_error_handler(request: Request, exc: GestaoError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


app.include_router(clients.router)
app.include_router(debts.router)
app.include_router(sales.router)
app.include_router(payments.router)
app.include_router(invoices.router)
app.include_router(products.router)
app.include_router(dashboard_router)
app.include_router(functions.router)

# WebSocket do dashboard (sem prefixo de router)
app.websocket("/ws/dashboard")(ws_dashboard)


@app.get("/health")
async def health():
    return {"status": "ok"}
