"""
Integration tests - API sobre SQLite en memoria.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trade_accounting.infrastructure.database import get_db, init_db, seed_default_templates
from trade_accounting.main import app

API = "/api/v1/trade-finance"


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with TestingSession() as db:
        seed_default_templates(db)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def create_effect(client, amount: str, **overrides) -> dict:
    payload = {
        "effect_type": "bill",
        "drawee_id": "CLI-001",
        "amount": amount,
        "issue_date": "2026-01-10",
        "maturity_date": "2026-04-10",
    }
    payload.update(overrides)
    response = client.post(f"{API}/effects", json=payload)
    assert response.status_code == 201
    return response.json()


class TestService:

    def test_root_and_health(self, client):
        assert client.get("/").json()["chart_of_accounts"] == "PGC 2007"
        assert client.get("/health").json()["status"] == "healthy"


class TestCalculationsApi:

    def test_discount_calculation(self, client):
        response = client.post(f"{API}/calculations/discount", json={
            "nominal_amount": "10000", "days": 90, "interest_rate": "5",
            "commission_rate": "0.25", "expenses": "30",
        })
        body = response.json()

        assert response.status_code == 200
        assert Decimal(body["net_amount"]) == Decimal("9820.00")
        assert Decimal(body["effective_rate"]) == Decimal("7.2")

    def test_discount_days_from_dates(self, client):
        response = client.post(f"{API}/calculations/discount", json={
            "nominal_amount": "10000", "discount_date": "2026-01-01",
            "maturity_date": "2026-04-01", "interest_rate": "5",
        })
        assert response.json()["days"] == 90

    def test_discount_needs_term(self, client):
        response = client.post(f"{API}/calculations/discount", json={
            "nominal_amount": "10000", "interest_rate": "5",
        })
        assert response.status_code == 400

    def test_factoring_calculation(self, client):
        response = client.post(f"{API}/calculations/factoring", json={
            "assigned_amount": "50000", "advance_percentage": "80", "days": 60,
            "interest_rate": "4.5", "commission_rate": "0.6",
        })
        assert Decimal(response.json()["advance_amount"]) == Decimal("40000.00")


class TestJournalApi:

    def test_generate_from_seeded_template(self, client):
        response = client.post(f"{API}/journal-entries/generate", json={
            "operation_type": "commercial_discount",
            "transaction_type": "discount",
            "operation": {
                "amount": "10000", "interest_amount": "125",
                "commission_amount": "25", "expenses": "30",
                "counterparty_id": "CLI-001",
            },
        })
        body = response.json()

        assert response.status_code == 200
        assert body["source"] == "template"
        assert [line["account_code"] for line in body["lines"]] == ["5208", "572", "6651", "6269"]
        assert body["balance"]["is_balanced"] is True

    def test_generate_without_amount(self, client):
        response = client.post(f"{API}/journal-entries/generate", json={
            "operation_type": "confirming", "transaction_type": "payment", "operation": {},
        })
        assert response.status_code == 400

    def test_unknown_operation_type(self, client):
        response = client.post(f"{API}/journal-entries/generate", json={
            "operation_type": "leasing", "transaction_type": "payment",
            "operation": {"amount": "10"},
        })
        assert response.status_code == 400

    def test_validate_lines(self, client):
        response = client.post(f"{API}/journal-entries/validate", json={"lines": [
            {"account_code": "572", "debit": "100.00"},
            {"account_code": "5208", "credit": "99.00"},
        ]})
        body = response.json()
        assert body["is_balanced"] is False
        assert Decimal(body["diff"]) == Decimal("1.00")


class TestTemplatesApi:

    def test_list_seeded_templates(self, client):
        templates = client.get(f"{API}/templates").json()
        assert len(templates) == 7

    def test_config_override_and_reset(self, client):
        path = "trade_finance/commercial_discount/collection"
        saved = client.put(f"{API}/templates/config", json={
            "operation_type": "commercial_discount",
            "transaction_type": "collection",
            "debit_account_code": "5209",
        })
        assert saved.status_code == 200

        template = client.get(f"{API}/templates/{path}").json()
        assert template["source"] == "config"
        assert template["debit_account_code"] == "5209"

        assert client.delete(f"{API}/templates/config/{path}").status_code == 200
        template = client.get(f"{API}/templates/{path}").json()
        assert template["source"] == "template"
        assert template["debit_account_code"] == "5208"
        assert client.delete(f"{API}/templates/config/{path}").status_code == 404

    def test_missing_template(self, client):
        response = client.get(f"{API}/templates/trade_finance/confirming/return")
        assert response.status_code == 404


class TestSupervisorApi:

    def test_review_unbalanced_auto_post(self, client):
        response = client.post(f"{API}/supervisor/review", json={
            "operation_type": "commercial_discount",
            "operation": {"amount": "1000", "counterparty_id": "CLI-1", "interest_rate": "5"},
            "lines": [
                {"account_code": "572", "debit": "1000"},
                {"account_code": "5208", "credit": "900"},
            ],
            "auto_post": True,
        })
        body = response.json()

        assert body["has_errors"] is True
        assert body["critical_count"] == 1
        assert [v["code"] for v in body["validations"]] == ["UNBALANCED_ENTRY"]
        assert body["alerts"][0]["severity"] == "critical"


class TestDiscountOperationsApi:

    payload = {
        "entity_id": "BANCO-1",
        "customer_id": "CLI-001",
        "discount_date": "2026-01-01",
        "maturity_date": "2026-04-01",
        "nominal_amount": "10000",
        "interest_rate": "5",
        "commission_rate": "0.25",
        "expenses": "30",
    }

    def test_create_draft_operation(self, client):
        response = client.post(f"{API}/discount-operations", json=self.payload)
        body = response.json()

        assert response.status_code == 201
        assert body["operation_number"] == "DES-20260101-0001"
        assert body["status"] == "draft"
        assert body["is_balanced"] is True
        assert Decimal(body["net_amount"]) == Decimal("9820.00")

        stored = client.get(f"{API}/discount-operations/{body['id']}").json()
        assert len(stored["lines"]) == 4

    def test_auto_post_when_supervisor_clean(self, client):
        client.put(f"{API}/templates/config", json={
            "operation_type": "commercial_discount",
            "transaction_type": "discount",
            "auto_post": True,
        })
        posted = client.post(f"{API}/discount-operations", json=self.payload).json()
        assert posted["status"] == "posted"

        without_customer = dict(self.payload, customer_id=None)
        held = client.post(f"{API}/discount-operations", json=without_customer).json()
        assert held["status"] == "draft"
        assert "MISSING_COUNTERPARTY" in [v["code"] for v in held["validations"]]

    def test_unknown_operation(self, client):
        assert client.get(f"{API}/discount-operations/missing").status_code == 404


class TestRemittancesApi:

    def test_create_and_conflict(self, client):
        e1 = create_effect(client, "1000.00")
        e2 = create_effect(client, "2500.50")
        e3 = create_effect(client, "300.25")

        response = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-1", "effect_ids": [e1["id"], e2["id"]],
        })
        assert response.status_code == 201
        remittance = response.json()
        assert Decimal(remittance["total_amount"]) == Decimal("3500.50")
        assert remittance["file_format"] == "cuaderno_58"

        conflict = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-2", "effect_ids": [e3["id"], e2["id"]],
        })
        assert conflict.status_code == 409
        assert conflict.json()["effect_ids"] == [e2["id"]]

        pending = client.get(f"{API}/effects/pending").json()
        assert [e["id"] for e in pending] == [e3["id"]]

    def test_lifecycle_and_rejection(self, client):
        e1 = create_effect(client, "1000.00")
        remittance = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-1", "effect_ids": [e1["id"]], "file_format": "sepa_xml",
        }).json()
        rid = remittance["id"]

        assert client.post(f"{API}/remittances/{rid}/confirm").status_code == 409
        assert client.post(f"{API}/remittances/{rid}/generate").json()["status"] == "generated"
        sent = client.post(f"{API}/remittances/{rid}/send", json={"bank_reference": "BK-1"}).json()
        assert sent["bank_reference"] == "BK-1"
        assert client.post(f"{API}/remittances/{rid}/reject").json()["status"] == "rejected"

        pending = client.get(f"{API}/effects/pending").json()
        assert [e["id"] for e in pending] == [e1["id"]]
        assert client.get(f"{API}/remittances/{rid}").json()["effect_ids"] == [e1["id"]]

    def test_settle_discounted_effect(self, client):
        e1 = create_effect(client, "1000.00")
        rid = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-1", "effect_ids": [e1["id"]],
        }).json()["id"]
        client.post(f"{API}/remittances/{rid}/generate")
        client.post(f"{API}/remittances/{rid}/send")

        settled = client.post(f"{API}/effects/{e1['id']}/settle", json={"outcome": "returned"})
        assert settled.json()["status"] == "returned"

    def test_settled_effect_survives_reject_and_confirm(self, client):
        e1 = create_effect(client, "1000.00")
        e2 = create_effect(client, "200.00")
        first = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-1", "effect_ids": [e1["id"], e2["id"]],
        }).json()["id"]
        client.post(f"{API}/remittances/{first}/generate")
        client.post(f"{API}/remittances/{first}/send")
        client.post(f"{API}/effects/{e1['id']}/settle", json={"outcome": "paid"})

        assert client.post(f"{API}/remittances/{first}/reject").status_code == 200
        pending = client.get(f"{API}/effects/pending").json()
        assert [e["id"] for e in pending] == [e2["id"]]
        retry = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-2", "effect_ids": [e1["id"]],
        })
        assert retry.status_code == 409

        second = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-2", "effect_ids": [e2["id"]],
        }).json()["id"]
        client.post(f"{API}/remittances/{second}/generate")
        client.post(f"{API}/remittances/{second}/send")
        client.post(f"{API}/effects/{e2['id']}/settle", json={"outcome": "paid"})
        assert client.post(f"{API}/remittances/{second}/confirm").status_code == 200

        settle_twice = client.post(f"{API}/effects/{e2['id']}/settle", json={"outcome": "paid"})
        assert settle_twice.status_code == 400

    def test_not_found(self, client):
        assert client.get(f"{API}/remittances/missing").status_code == 404
        response = client.post(f"{API}/remittances", json={
            "entity_id": "BANCO-1", "effect_ids": ["missing"],
        })
        assert response.status_code == 404


class TestFactoringApi:

    def _contract(self, client, limit="100000"):
        response = client.post(f"{API}/factoring/contracts", json={
            "contract_number": "FACT-001",
            "financial_entity_id": "BANCO-1",
            "customer_id": "EMPRESA-1",
            "global_limit": limit,
            "advance_percentage": "80",
            "interest_rate": "4.5",
        })
        assert response.status_code == 201
        return response.json()

    def test_assignment_lifecycle(self, client):
        contract = self._contract(client)
        assignment = client.post(f"{API}/factoring/contracts/{contract['id']}/assignments", json={
            "invoice_number": "F-001", "debtor_id": "DEU-1", "invoice_amount": "50000",
        }).json()
        aid = assignment["id"]

        client.post(f"{API}/factoring/assignments/{aid}/approve")
        advanced = client.post(f"{API}/factoring/assignments/{aid}/advance").json()
        assert advanced["assignment"]["status"] == "advanced"
        assert Decimal(advanced["contract"]["available_limit"]) == Decimal("60000")

        collected = client.post(f"{API}/factoring/assignments/{aid}/collect").json()
        assert Decimal(collected["contract"]["available_limit"]) == Decimal("100000")

    def test_limit_exceeded(self, client):
        contract = self._contract(client, limit="1000")
        aid = client.post(f"{API}/factoring/contracts/{contract['id']}/assignments", json={
            "invoice_number": "F-002", "debtor_id": "DEU-1", "invoice_amount": "5000",
        }).json()["id"]
        client.post(f"{API}/factoring/assignments/{aid}/approve")

        response = client.post(f"{API}/factoring/assignments/{aid}/advance")
        assert response.status_code == 400

    def test_duplicate_contract_number(self, client):
        self._contract(client)
        response = client.post(f"{API}/factoring/contracts", json={
            "contract_number": "FACT-001", "financial_entity_id": "B", "customer_id": "C",
            "global_limit": "10", "advance_percentage": "50", "interest_rate": "1",
        })
        assert response.status_code == 409
