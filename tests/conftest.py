"""Fixtures: SQLite em memória, change bus de teste e gateway de WhatsApp simulado."""

import json
from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lanebeleza import models  # noqa: F401  registra as tabelas
from lanebeleza.database import Base, get_db
from lanebeleza.events import ChangeBus, get_change_bus
from lanebeleza.main import app
from lanebeleza.models import Client
from lanebeleza.services.notifications import WhatsAppClient, get_whatsapp_client

GATEWAY_URL = "https://whatsapp.test/message/sendText/lanebeleza"
GATEWAY_KEY = "chave-teste"


class FakeGateway:
    """Grava os requests recebidos e responde com o status configurado."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.fail_with = None       # ex: httpx.ConnectError

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with("falha simulada", request=request)
        return httpx.Response(self.status_code, json={"status": "ok"})

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def events():
    return []


@pytest.fixture
def bus(events):
    bus = ChangeBus()
    bus.subscribe(events.append)
    return bus


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sender(gateway):
    return WhatsAppClient(
        api_url=GATEWAY_URL,
        api_key=GATEWAY_KEY,
        timeout=5,
        transport=httpx.MockTransport(gateway.handler),
    )


@pytest.fixture
def api(db, bus, sender):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_change_bus] = lambda: bus
    app.dependency_overrides[get_whatsapp_client] = lambda: sender
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_client(db):
    def _make(name="Maria Souza", phone="(81) 99876-5432", invoice_day=10, **kwargs):
        client = Client(name=name, phone=phone, invoice_day=invoice_day, **kwargs)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    return _make


@pytest.fixture
def jan_2024():
    return date(2024, 1, 1)
