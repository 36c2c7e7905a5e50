"""Endpoints HTTP (TestClient com banco em memória e gateway simulado)."""

from lanebeleza.models import Debt, Sale

CREDITO = "Crédito Próprio Loja"

PRODUTOS = [
    {"description": "Bolsa", "value": 200},
    {"description": "Perfume", "value": 100},
]


def _novo_cliente(api, **extra):
    body = {"name": "Maria Souza", "phone": "(81) 99876-5432", "invoice_day": 10, **extra}
    resp = api.post("/api/clients", json=body)
    assert resp.status_code == 201
    return resp.json()


# ── Clientes ──

def test_client_crud(api):
    criado = _novo_cliente(api)
    assert criado["total_debt"] == 0
    assert criado["status"] == "em_dia"

    resp = api.patch(f"/api/clients/{criado['id']}", json={"invoice_day": 20, "address": "Rua A, 10"})
    assert resp.status_code == 200
    assert resp.json()["invoice_day"] == 20

    lista = api.get("/api/clients").json()
    assert [c["id"] for c in lista] == [criado["id"]]

    assert api.get("/api/clients/999").status_code == 404


def test_client_invalid_invoice_day(api):
    resp = api.post("/api/clients", json={"name": "X", "invoice_day": 32})
    assert resp.status_code == 422


# ── Débitos ──

def test_create_installment_debt(api, db, events):
    cliente = _novo_cliente(api)
    resp = api.post("/api/debts", json={
        "client_id": cliente["id"], "amount": "300.00", "installments": 3,
        "invoice_month": "2024-01", "description": "Bolsa",
    })

    assert resp.status_code == 201
    body = resp.json()
    assert len(body["debt_ids"]) == 3
    assert body["installment_amount"] == 100.0
    assert body["first_due_date"] == "2024-01-01"
    assert body["notification"] is None
    assert ("totals", None) in [(e.entity, e.id) for e in events]

    debitos = api.get("/api/debts", params={"client_id": cliente["id"]}).json()
    assert [d["invoice_month"] for d in debitos] == ["2024-01-01", "2024-02-01", "2024-03-01"]
    assert debitos[0]["description"] == "Bolsa (Origem - R$ 300,00) (1/3)"


def test_create_debt_with_notification(api, gateway):
    cliente = _novo_cliente(api)
    resp = api.post("/api/debts", json={
        "client_id": cliente["id"], "amount": 50, "description": "Esmalte", "notify": True,
    })

    assert resp.json()["notification"] == "sent"
    assert "• Esmalte: R$ 50,00" in gateway.last_json["text"]


def test_create_debt_validation_errors(api, db):
    cliente = _novo_cliente(api)
    for body in (
        {"amount": 100, "installments": 0},
        {"amount": 100, "installments": 49},
        {"amount": 0},
        {"amount": -5},
        {"amount": 100, "invoice_month": "2024-13"},
        {"amount": "0.01", "installments": 3},
        {"amount": 250, "products": PRODUTOS},
    ):
        resp = api.post("/api/debts", json={"client_id": cliente["id"], **body})
        assert resp.status_code == 400, body
        assert resp.json()["detail"]

    assert db.query(Debt).count() == 0


def test_create_debt_unknown_client(api):
    resp = api.post("/api/debts", json={"client_id": 999, "amount": 10})
    assert resp.status_code == 404


def test_delete_debts(api, db):
    cliente = _novo_cliente(api)
    ids = api.post("/api/debts", json={
        "client_id": cliente["id"], "amount": 90, "installments": 3,
    }).json()["debt_ids"]

    resp = api.request("DELETE", "/api/debts", json={"debt_ids": ids[:2]})
    assert resp.json() == {"success": True, "deleted": 2}
    assert db.query(Debt).count() == 1


def test_promissory_note_pdf(api):
    cliente = _novo_cliente(api, document="123.456.789-00")
    ids = api.post("/api/debts", json={
        "client_id": cliente["id"], "amount": 300, "installments": 3, "invoice_month": "2024-01",
    }).json()["debt_ids"]

    resp = api.get(f"/api/debts/{ids[1]}/promissoria")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    assert api.get("/api/debts/999/promissoria").status_code == 404


# ── Vendas ──

def test_sale_store_credit_survives_gateway_failure(api, db, gateway):
    cliente = _novo_cliente(api)
    gateway.status_code = 500

    resp = api.post("/api/sales", json={
        "client_id": cliente["id"], "products": PRODUTOS, "payment_method": CREDITO,
        "installments": 3, "invoice_month": "2024-01",
    })

    assert resp.status_code == 201
    body = resp.json()
    assert body["notification"] == "failed"
    assert len(body["debt_ids"]) == 3
    assert db.query(Sale).count() == 1
    assert len(gateway.requests) == 1


def test_sale_other_method(api, db, gateway):
    cliente = _novo_cliente(api)
    resp = api.post("/api/sales", json={
        "client_id": cliente["id"], "products": PRODUTOS, "payment_method": "Pix", "installments": 4,
    })

    body = resp.json()
    assert body["debt_ids"] == []
    assert body["installments"] == 1
    assert body["notification"] == "sent"
    assert "Forma de pagamento: Pix" in gateway.last_json["text"]
    assert "Parcelamento" not in gateway.last_json["text"]
    assert db.query(Debt).count() == 0


def test_sale_report_and_delete(api, db):
    cliente = _novo_cliente(api)
    venda = api.post("/api/sales", json={
        "client_id": cliente["id"], "products": PRODUTOS, "payment_method": CREDITO,
        "installments": 2, "notify": False,
    }).json()

    relatorio = api.get("/api/sales").json()
    assert relatorio[0]["id"] == venda["sale_id"]
    assert relatorio[0]["total_amount"] == 300.0

    assert api.delete(f"/api/sales/{venda['sale_id']}").json() == {"success": True}
    assert db.query(Sale).count() == 0
    assert db.query(Debt).count() == 0
    assert api.delete(f"/api/sales/{venda['sale_id']}").status_code == 404


# ── Pagamentos e fatura ──

def test_payment_and_invoice(api):
    cliente = _novo_cliente(api)
    ids = api.post("/api/debts", json={
        "client_id": cliente["id"], "amount": 300, "installments": 3, "invoice_month": "2024-01",
    }).json()["debt_ids"]

    resp = api.post("/api/payments", json={"debt_id": ids[0], "amount": "40", "payment_date": "2024-01-09"})
    assert resp.status_code == 201
    pagamento = resp.json()
    assert pagamento["debt_status"] == "partial"
    assert pagamento["invoice_month"] == "2024-01-01"

    fatura = api.get(f"/api/invoices/{cliente['id']}", params={"month": "2024-01"}).json()
    assert fatura["total_amount"] == 100.0
    assert fatura["total_paid"] == 40.0
    assert fatura["pending_amount"] == 60.0
    assert fatura["due_date"] == "2024-01-10"

    assert api.delete(f"/api/payments/{pagamento['payment_id']}").json() == {"success": True}
    assert api.get(f"/api/invoices/{cliente['id']}", params={"month": "2024-01"}).json()["total_paid"] == 0.0


def test_payment_errors(api):
    assert api.post("/api/payments", json={"debt_id": 999, "amount": 10}).status_code == 404

    cliente = _novo_cliente(api)
    debt_id = api.post("/api/debts", json={"client_id": cliente["id"], "amount": 10}).json()["debt_ids"][0]
    assert api.post("/api/payments", json={"debt_id": debt_id, "amount": 0}).status_code == 400


def test_invoice_bad_month(api):
    cliente = _novo_cliente(api)
    assert api.get(f"/api/invoices/{cliente['id']}", params={"month": "2024-13"}).status_code == 400
    assert api.get("/api/invoices/999", params={"month": "2024-01"}).status_code == 404


def test_dashboard(api):
    cliente = _novo_cliente(api)
    api.post("/api/debts", json={"client_id": cliente["id"], "amount": 120})

    totais = api.get("/api/dashboard").json()
    assert totais["total_debt"] == 120.0
    assert totais["total_clients"] == 1


def test_dashboard_websocket_ping(api):
    with api.websocket_connect("/ws/dashboard") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == "pong"


# ── Funções ──

def test_send_invoice_function(api, gateway):
    cliente = _novo_cliente(api)
    resp = api.post("/functions/send-invoice", json={
        "clientId": cliente["id"], "dueDate": "10/01/2024",
        "invoiceAmount": 100, "totalDebt": 300, "invoiceMonth": "2024-01",
    })

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert "*R$ 100,00*" in gateway.last_json["text"]
    assert api.get(f"/api/clients/{cliente['id']}").json()["last_invoice_sent_month"] == "2024-01"


def test_send_invoice_function_errors(api, gateway):
    resp = api.post("/functions/send-invoice", json={
        "clientId": 999, "dueDate": "10/01/2024", "invoiceAmount": 1, "totalDebt": 1,
    })
    assert resp.status_code == 400
    assert resp.json() == {"error": "Client not found"}

    cliente = _novo_cliente(api)
    gateway.status_code = 500
    resp = api.post("/functions/send-invoice", json={
        "clientId": cliente["id"], "dueDate": "10/01/2024", "invoiceAmount": 1, "totalDebt": 1,
    })
    assert resp.status_code == 400
    assert "500" in resp.json()["error"]


def test_send_whatsapp_message_function(api, gateway):
    resp = api.post("/functions/send-whatsapp-message", json={
        "phone": "(11) 91234-5678",
        "customerName": "Maria",
        "products": PRODUTOS,
        "totalAmount": 300,
        "paymentMethod": CREDITO,
        "installments": 3,
        "installmentAmount": 100,
        "firstPaymentDate": "01/02/2024",
    })

    assert resp.json() == {"success": True}
    assert gateway.last_json["number"] == "5511912345678"
    texto = gateway.last_json["text"]
    assert "Parcelamento: 3x de R$ 100,00" in texto
    assert "Vencimento da 1ª parcela: 01/02/2024" in texto


def test_send_whatsapp_message_function_failure(api, gateway):
    gateway.status_code = 401
    resp = api.post("/functions/send-whatsapp-message", json={
        "phone": "81999990000", "customerName": "Maria", "products": PRODUTOS,
        "totalAmount": 300, "paymentMethod": "Pix",
    })
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_send_invoice_function_malformed_body(api, gateway):
    resp = api.post("/functions/send-invoice", json={"dueDate": "10/01/2024"})
    assert resp.status_code == 400
    assert "clientId" in resp.json()["error"]

    resp = api.post("/functions/send-invoice", content=b"{nao-e-json",
                    headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert gateway.requests == []


def test_send_whatsapp_message_function_malformed_body(api, gateway):
    resp = api.post("/functions/send-whatsapp-message", json={
        "phone": "81999990000", "customerName": "Maria", "products": [{"description": "Bolsa"}],
        "totalAmount": 300, "paymentMethod": "Pix",
    })
    assert resp.status_code == 400
    assert "products" in resp.json()["error"]
    assert gateway.requests == []
