"""In-process banking back end with deterministic data for development and tests."""

from __future__ import annotations

import itertools
import logging
from typing import Any

from bankbot.core.errors import OperationError
from bankbot.dialogue.models import utcnow

from .base import BankingBackend

logger = logging.getLogger("bankbot.operations")

OPENING_BALANCE = 15750.50
ACCOUNT_NUMBER = "****1234"

KNOWLEDGE_BASE = (
    {
        "id": "doc_loans",
        "topics": ("loan", "interest", "rate", "tenure", "personal", "home", "car", "education"),
        "text": (
            "We offer Personal Loans (up to $100,000, 12-84 months, from 6.99%), "
            "Home Loans (up to $2M, up to 30 years, from 3.5%), Car Loans (up to $200,000, "
            "12-84 months, from 4.99%) and Education Loans (up to $500,000, up to 15 years, from 5.5%)."
        ),
    },
    {
        "id": "doc_eligibility",
        "topics": ("eligib", "criteria", "requirement", "document", "apply"),
        "text": (
            "Eligibility requires a minimum age of 21, at least 6 months of stable employment, "
            "a minimum monthly income and a good credit score. ID proof, address proof, income "
            "statements and bank statements are required."
        ),
    },
    {
        "id": "doc_accounts",
        "topics": ("account", "fee", "minimum", "savings", "checking"),
        "text": (
            "Basic checking accounts have no monthly fee with a minimum balance of $500. "
            "Savings accounts earn 2.5% interest per year."
        ),
    },
)


class MockBankingBackend(BankingBackend):
    """Deterministic mock bank keeping a running balance per customer."""

    def __init__(self, opening_balance: float = OPENING_BALANCE) -> None:
        self._opening_balance = opening_balance
        self._balances: dict[str, float] = {}
        self._counter = itertools.count(1)

    def _owner(self, auth_token: str | None) -> str:
        return auth_token or "anonymous"

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._counter):06d}"

    def balance_of(self, auth_token: str | None = None) -> float:
        return self._balances.get(self._owner(auth_token), self._opening_balance)

    async def balance_inquiry(self, *, auth_token: str | None = None) -> dict[str, Any]:
        return {
            "balance": self.balance_of(auth_token),
            "account_number": ACCOUNT_NUMBER,
            "account_type": "savings",
            "currency": "USD",
        }

    async def mini_statement(self, *, auth_token: str | None = None) -> dict[str, Any]:
        now = utcnow().isoformat()
        return {
            "transactions": [
                {"id": "txn_001", "amount": -200.00, "type": "debit", "description": "ATM Withdrawal", "created_at": now},
                {"id": "txn_002", "amount": 5000.00, "type": "credit", "description": "Salary Credit", "created_at": now},
            ]
        }

    async def transfer(
        self,
        to_account: str,
        amount: float,
        description: str | None = None,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        balance = self.balance_of(auth_token)
        if amount > balance:
            raise OperationError("transfer", f"Insufficient funds: {balance:.2f} available")
        balance = round(balance - amount, 2)
        self._balances[self._owner(auth_token)] = balance
        transaction_id = self._next_id("txn")
        logger.info("Mock transfer %s of %.2f to %s", transaction_id, amount, to_account)
        return {
            "transaction_id": transaction_id,
            "to_account": to_account,
            "amount": amount,
            "description": description,
            "balance": balance,
        }

    async def card_block(self, card_id: str, *, auth_token: str | None = None) -> dict[str, Any]:
        return {"card_id": card_id, "status": "blocked"}

    async def loan_apply(
        self,
        loan_type: str,
        amount: float,
        tenure: int,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        return {
            "loan_id": self._next_id("loan"),
            "loan_type": loan_type,
            "amount": amount,
            "tenure": tenure,
            "status": "submitted",
        }

    async def complaint_file(
        self,
        subject: str,
        description: str,
        category: str,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        return {
            "complaint_id": self._next_id("complaint"),
            "subject": subject,
            "category": category,
            "status": "open",
        }

    async def information_lookup(self, query: str, *, auth_token: str | None = None) -> dict[str, Any]:
        lowered = query.lower()
        results = [
            {"id": doc["id"], "text": doc["text"]}
            for doc in KNOWLEDGE_BASE
            if any(topic in lowered for topic in doc["topics"])
        ]
        return {"query": query, "results": results}
