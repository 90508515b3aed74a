"""Banking back end that talks to the bank's REST API over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bankbot.core.errors import OperationError

from .base import BankingBackend

logger = logging.getLogger("bankbot.operations")


class HttpBankingBackend(BankingBackend):
    """REST client forwarding the customer's bearer token."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        auth_token: str | None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"

        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, json=body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, headers=headers, json=body)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("%s request to %s failed: %s", operation, url, exc)
            raise OperationError(operation, str(exc)) from exc

        if not isinstance(payload, dict):
            raise OperationError(operation, "Unexpected response body")
        if response.is_error or not payload.get("success", False):
            error = payload.get("error")
            detail = error.get("message") if isinstance(error, dict) else payload.get("message")
            raise OperationError(operation, detail or f"HTTP {response.status_code}")

        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    async def balance_inquiry(self, *, auth_token: str | None = None) -> dict[str, Any]:
        data = await self._call("balance_inquiry", "GET", "/account/balance", auth_token=auth_token)
        return {
            "balance": data.get("balance"),
            "account_number": data.get("accountNumber"),
            "account_type": data.get("accountType"),
            "currency": data.get("currency"),
        }

    async def mini_statement(self, *, auth_token: str | None = None) -> dict[str, Any]:
        data = await self._call("mini_statement", "GET", "/account/mini-statement", auth_token=auth_token)
        transactions = data.get("transactions") or []
        return {
            "transactions": [
                {
                    "id": item.get("id"),
                    "amount": item.get("amount"),
                    "type": item.get("type"),
                    "description": item.get("description"),
                    "created_at": item.get("createdAt"),
                }
                for item in transactions
                if isinstance(item, dict)
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
        body: dict[str, Any] = {"toAccountNumber": to_account, "amount": amount}
        if description:
            body["description"] = description
        data = await self._call("transfer", "POST", "/transaction/send", auth_token=auth_token, body=body)
        return {
            "transaction_id": data.get("transactionId") or data.get("id"),
            "to_account": to_account,
            "amount": amount,
            "description": description,
        }

    async def card_block(self, card_id: str, *, auth_token: str | None = None) -> dict[str, Any]:
        await self._call("card_block", "POST", "/card/block", auth_token=auth_token, body={"cardId": card_id})
        return {"card_id": card_id, "status": "blocked"}

    async def loan_apply(
        self,
        loan_type: str,
        amount: float,
        tenure: int,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        body = {"loanType": loan_type, "amount": amount, "tenure": tenure}
        data = await self._call("loan_application", "POST", "/loan/apply", auth_token=auth_token, body=body)
        return {
            "loan_id": data.get("loanId") or data.get("id"),
            "loan_type": loan_type,
            "amount": amount,
            "tenure": tenure,
            "status": data.get("status", "submitted"),
        }

    async def complaint_file(
        self,
        subject: str,
        description: str,
        category: str,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        body = {"subject": subject, "description": description, "category": category}
        data = await self._call("complaint", "POST", "/support/complaint", auth_token=auth_token, body=body)
        return {
            "complaint_id": data.get("complaintId") or data.get("id"),
            "subject": subject,
            "category": category,
            "status": data.get("status", "open"),
        }

    async def information_lookup(self, query: str, *, auth_token: str | None = None) -> dict[str, Any]:
        body = {"query": query, "top_k": 3}
        data = await self._call("information_lookup", "POST", "/rag/search", auth_token=auth_token, body=body)
        results = data.get("results") or []
        return {
            "query": query,
            "results": [
                {"id": item.get("id"), "text": item.get("text", "")}
                for item in results
                if isinstance(item, dict)
            ],
        }
