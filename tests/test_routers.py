from __future__ import annotations

from fastapi.testclient import TestClient

from thalexa.api.deps import (
    get_begin_zklogin_use_case,
    get_chain_query_service,
    get_epoch_query_service,
    get_escrow_actions_use_case,
    get_list_transactions_use_case,
    get_product_actions_use_case,
    get_signer,
)
from thalexa.application.dto.escrow import EscrowActionOutput
from thalexa.application.dto.zklogin import BeginZkLoginOutput
from thalexa.domain.entities.auth_session import ZkLoginFlowState
from thalexa.domain.entities.transaction import Transaction
from thalexa.domain.exceptions import RejectedError
from thalexa.main import app


SELLER = "0x" + "1" * 64
ARBITER = "0x" + "2" * 64
BUYER = "0x" + "5" * 64


class FakeBeginZkLoginUseCase:
    def __init__(self):
        self.commands = []

    def execute(self, command):
        self.commands.append(command)
        return BeginZkLoginOutput(
            session_id="session-1",
            provider=command.provider,
            authorization_url="https://accounts.example.com/auth?nonce=abc",
            nonce="abc",
            max_epoch=command.max_epoch,
            state="state-token",
            flow_state=ZkLoginFlowState.REDIRECT_ISSUED,
        )


class FakeEpochQueries:
    async def get_current_epoch(self) -> int:
        return 10


class FakeEscrowActionsUseCase:
    def __init__(self):
        self.created = []

    async def create_escrow(self, command, *, signer):
        self.created.append(command)
        return EscrowActionOutput(escrow_id="0xe1", digest="D1", transaction_id="D1", status="confirmed")

    async def accept_escrow(self, *, escrow_id, signer):
        raise RejectedError("MoveAbort in escrow::accept_escrow: ENotSeller", tx_hash="D2")


class FakeProductActionsUseCase:
    async def create_product(self, command, *, signer):
        raise AssertionError("should not be called")


class FakeListTransactionsUseCase:
    def execute(self, *, address, limit=50):
        if address == "nope":
            raise ValueError("address must be a 0x-prefixed 32-byte Sui address.")
        return [
            Transaction(
                id="D1",
                sender=address,
                receiver=SELLER,
                amount=4_000_000_000,
                currency="SUI",
                product_id="0xp",
                escrow_id="0xe1",
                timestamp=1_000,
                status="confirmed",
                tx_hash="D1",
                function="create_escrow",
            )
        ][:limit]


def test_begin_sets_session_cookie_and_defaults_max_epoch():
    use_case = FakeBeginZkLoginUseCase()
    app.dependency_overrides[get_begin_zklogin_use_case] = lambda: use_case
    app.dependency_overrides[get_epoch_query_service] = lambda: FakeEpochQueries()

    client = TestClient(app)
    explicit = client.post("/v1/zklogin/begin", json={"provider": "google", "max_epoch": 40})
    defaulted = client.post("/v1/zklogin/begin", json={"provider": "google"})

    assert explicit.status_code == 200
    assert explicit.json()["max_epoch"] == 40
    assert explicit.json()["flow_state"] == "redirect_issued"
    assert "zklogin_session=session-1" in explicit.headers["set-cookie"]
    assert defaulted.status_code == 200
    assert use_case.commands[1].max_epoch > 10

    app.dependency_overrides.clear()


def test_session_endpoint_requires_session_id():
    client = TestClient(app)
    response = client.get("/v1/zklogin/session")

    assert response.status_code == 401


def test_create_escrow_returns_action_response():
    use_case = FakeEscrowActionsUseCase()
    app.dependency_overrides[get_signer] = lambda: object()
    app.dependency_overrides[get_escrow_actions_use_case] = lambda: use_case

    client = TestClient(app)
    response = client.post(
        "/v1/escrows",
        json={"seller": SELLER, "arbiter": ARBITER, "product_id": "0xp", "amount": 4_000_000_000, "terms": "30d"},
    )

    assert response.status_code == 200
    assert response.json() == {"escrow_id": "0xe1", "digest": "D1", "transaction_id": "D1", "status": "confirmed"}
    assert use_case.created[0].terms == "30d"

    app.dependency_overrides.clear()


def test_rejected_call_maps_to_conflict_with_code():
    app.dependency_overrides[get_signer] = lambda: object()
    app.dependency_overrides[get_escrow_actions_use_case] = lambda: FakeEscrowActionsUseCase()

    client = TestClient(app)
    response = client.post("/v1/escrows/0xe1/accept")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "rejected"
    assert detail["tx_hash"] == "D2"
    assert "ENotSeller" in detail["message"]

    app.dependency_overrides.clear()


def test_create_escrow_validates_body_before_signing():
    app.dependency_overrides[get_signer] = lambda: object()
    app.dependency_overrides[get_escrow_actions_use_case] = lambda: FakeEscrowActionsUseCase()

    client = TestClient(app)
    response = client.post(
        "/v1/escrows",
        json={"seller": "0x1", "arbiter": ARBITER, "product_id": "0xp", "amount": 0},
    )

    assert response.status_code == 422

    app.dependency_overrides.clear()


def test_create_product_rejects_invalid_base64_image():
    app.dependency_overrides[get_signer] = lambda: object()
    app.dependency_overrides[get_product_actions_use_case] = lambda: FakeProductActionsUseCase()

    client = TestClient(app)
    response = client.post(
        "/v1/products",
        json={
            "account_id": "0xa1",
            "name": "Coffee",
            "category": "food",
            "quantity": 3,
            "unit_price": 1_000,
            "image": {"filename": "coffee.png", "content_type": "image/png", "content_base64": "%%%"},
        },
    )

    assert response.status_code == 400

    app.dependency_overrides.clear()


def test_subscription_tiers_are_listed_in_id_order():
    client = TestClient(app)
    response = client.get("/v1/subscription-tiers")

    assert response.status_code == 200
    payload = response.json()
    assert [tier["code"] for tier in payload] == ["starter", "professional", "enterprise"]
    assert payload[1]["price_mist"] == 500_000_000_000


def test_address_endpoints_reject_invalid_addresses():
    app.dependency_overrides[get_chain_query_service] = lambda: FakeEpochQueries()

    client = TestClient(app)

    assert client.get("/v1/addresses/0x12/balance").status_code == 400
    assert client.post("/v1/addresses/not-an-address/gas").status_code == 400

    app.dependency_overrides.clear()


def test_transactions_are_listed_for_address():
    app.dependency_overrides[get_list_transactions_use_case] = lambda: FakeListTransactionsUseCase()

    client = TestClient(app)
    response = client.get(f"/v1/addresses/{BUYER}/transactions", params={"limit": 1})
    rejected = client.get("/v1/addresses/nope/transactions")
    out_of_range = client.get(f"/v1/addresses/{BUYER}/transactions", params={"limit": 500})

    assert response.status_code == 200
    assert response.json()[0]["function"] == "create_escrow"
    assert rejected.status_code == 400
    assert out_of_range.status_code == 422

    app.dependency_overrides.clear()


def test_health():
    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
