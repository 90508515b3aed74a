import uuid

from fastapi.testclient import TestClient

from bankbot import main
from bankbot.main import app


client = TestClient(app)


def test_chat_unknown_intent_asks_for_clarification():
    response = client.post(
        "/chat",
        json={"conversation_id": f"conv-unknown-{uuid.uuid4().hex}", "content": "blorbledygook"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["phase"] == "intent_detection"
    assert payload["current_task"] is None
    assert "what would you like to do" in payload["reply"].lower()


def test_chat_invalid_loan_amount_stays_in_slot_filling():
    conversation_id = f"conv-invalid-{uuid.uuid4().hex}"
    for text in ["I want a loan", "car"]:
        client.post("/chat", json={"conversation_id": conversation_id, "content": text})

    response = client.post("/chat", json={"conversation_id": conversation_id, "content": "-20"})

    payload = response.json()
    assert payload["phase"] == "slot_filling"
    assert "amount" not in payload["collected_fields"]
    assert payload["reply"] == "Please provide a valid loan amount greater than $0."


def test_chat_survives_backend_crash(monkeypatch):
    conversation_id = f"conv-crash-{uuid.uuid4().hex}"

    async def crash(*args, **kwargs):  # noqa: ANN002, ANN003
        raise RuntimeError("backend unavailable")

    monkeypatch.setattr(main.banking_backend, "balance_inquiry", crash)

    response = client.post("/chat", json={"conversation_id": conversation_id, "content": "what's my balance"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["phase"] == "intent_detection"
    assert "something went wrong" in payload["reply"].lower()
    assert "backend unavailable" not in payload["reply"]
