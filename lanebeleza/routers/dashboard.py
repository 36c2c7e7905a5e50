"""
Módulo: Dashboard
lanebeleza/routers/dashboard.py

Cards de totais + WebSocket que avisa as telas abertas quando algo muda
(débito, venda, pagamento, cliente, produto). A tela recarrega o que precisa.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket
from sqlalchemy.orm import Session

from lanebeleza.database import get_db
from lanebeleza.events import ChangeEvent, change_bus
from lanebeleza.services.ledger import dashboard_totals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("")
def totais(db: Session = Depends(get_db)):
    return dashboard_totals(db)


# ══════════════════════════════════════════════════════════
# WEBSOCKET
# ══════════════════════════════════════════════════════════

class DashboardNotifier:
    """
    Telas do dashboard conectadas por WebSocket.

    Assina o change bus: cada ChangeEvent vira {"event": "change", "data":
    {"entity", "id"}} para todas as conexões. Conexão que falha no envio sai
    da lista.
    """

    def __init__(self):
        self.connections: list[WebSocket] = []
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.loop = asyncio.get_running_loop()
        self.connections.append(ws)
        logger.debug(f"Dashboard conectado ({len(self.connections)} telas)")

    def disconnect(self, ws: WebSocket):
        if ws in self.connections:
            self.connections.remove(ws)

    async def broadcast(self, event: ChangeEvent):
        conexoes = list(self.connections)
        mensagem = {"event": "change", "data": event.to_dict()}
        resultados = await asyncio.gather(
            *(ws.send_json(mensagem) for ws in conexoes), return_exceptions=True
        )
        for ws, resultado in zip(conexoes, resultados):
            if isinstance(resultado, Exception):
                logger.debug(f"Conexão do dashboard descartada: {resultado}")
                self.disconnect(ws)

    def on_change(self, event: ChangeEvent):
        # Publicação síncrona, possivelmente fora do event loop das conexões
        if not self.connections or self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(event), self.loop)


# Instância global
notifier = DashboardNotifier()
change_bus.subscribe(notifier.on_change)


# Registrado em main.py: app.websocket("/ws/dashboard")(ws_dashboard)
async def ws_dashboard(websocket: WebSocket):
    await notifier.connect(websocket)
    try:
        async for mensagem in websocket.iter_text():
            if mensagem == "ping":
                await websocket.send_text("pong")
    finally:
        notifier.disconnect(websocket)
