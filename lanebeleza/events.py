"""
Notificação de mudanças
lanebeleza/events.py

Depois de cada commit, os serviços publicam {entity, id}. Quem mostra
dados derivados (dashboard, lista de clientes, fatura do mês) assina e
recarrega. Não há cache compartilhado: o evento só avisa que algo mudou.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Callable, List, Optional, Union

logger = logging.getLogger(__name__)

EntityId = Union[int, str, None]


@dataclass(frozen=True)
class ChangeEvent:
    entity: str             # client | debt | sale | payment | product | totals
    id: EntityId = None

    def to_dict(self) -> dict:
        return asdict(self)


Listener = Callable[[ChangeEvent], None]


class ChangeBus:
    """Publicação síncrona; um assinante com erro não derruba os outros."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, entity: str, id: EntityId = None) -> ChangeEvent:
        event = ChangeEvent(entity=entity, id=id)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Assinante falhou para {event}: {e}", exc_info=True)
        return event

    def publish_many(self, events: List[ChangeEvent]) -> None:
        for event in events:
            self.publish(event.entity, event.id)


# Instância global
change_bus = ChangeBus()


def get_change_bus() -> ChangeBus:
    return change_bus


def publish_client_change(bus: Optional[ChangeBus], client_id: int, *changes: ChangeEvent) -> None:
    """Publica as mudanças da entidade + cliente + totais agregados."""
    if bus is None:
        return
    bus.publish_many(list(changes))
    bus.publish("client", client_id)
    bus.publish("totals")
