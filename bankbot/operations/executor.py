"""Dispatch completed tasks to the banking back end and phrase the result."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from bankbot.core.errors import OperationError
from bankbot.dialogue.models import TaskType

from .base import BankingBackend, OperationOutcome

logger = logging.getLogger("bankbot.operations")

# Task -> (back-end method, fields forwarded as keyword arguments).
OPERATIONS: Mapping[TaskType, tuple[str, tuple[str, ...]]] = {
    TaskType.BALANCE_INQUIRY: ("balance_inquiry", ()),
    TaskType.MINI_STATEMENT: ("mini_statement", ()),
    TaskType.TRANSFER: ("transfer", ("to_account", "amount", "description")),
    TaskType.CARD_BLOCK: ("card_block", ("card_id",)),
    TaskType.LOAN_APPLICATION: ("loan_apply", ("loan_type", "amount", "tenure")),
    TaskType.COMPLAINT: ("complaint_file", ("subject", "description", "category")),
    TaskType.INFORMATION_LOOKUP: ("information_lookup", ("query",)),
}

TASK_NAMES: Mapping[TaskType, str] = {
    TaskType.BALANCE_INQUIRY: "balance inquiry",
    TaskType.MINI_STATEMENT: "mini statement",
    TaskType.TRANSFER: "transfer",
    TaskType.CARD_BLOCK: "card block",
    TaskType.LOAN_APPLICATION: "loan application",
    TaskType.COMPLAINT: "complaint",
    TaskType.INFORMATION_LOOKUP: "information lookup",
    TaskType.GENERAL_INQUIRY: "request",
}


def format_money(value: Any) -> str:
    try:
        return f"${float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def _balance(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    account = data.get("account_number")
    suffix = f" in account {account}" if account else ""
    return f"Your current balance is {format_money(data.get('balance'))}{suffix}."


def _statement(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    transactions = data.get("transactions") or []
    if not transactions:
        return "You have no recent transactions."
    lines = ["Here are your recent transactions:"]
    for item in transactions:
        lines.append(f"- {item.get('description') or item.get('type')}: {format_money(item.get('amount'))}")
    return "\n".join(lines)


def _transfer(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    reply = f"Transfer of {format_money(fields.get('amount'))} to {fields.get('to_account')} completed."
    if data.get("transaction_id"):
        reply += f" Transaction ID: {data['transaction_id']}."
    if data.get("balance") is not None:
        reply += f" Your new balance is {format_money(data['balance'])}."
    return reply


def _card_block(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    return f"Your card {fields.get('card_id')} has been blocked. A replacement can be requested any time."


def _loan(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    reply = (
        f"Your {fields.get('loan_type')} loan application for {format_money(fields.get('amount'))} "
        f"over {fields.get('tenure')} months has been submitted."
    )
    if data.get("loan_id"):
        reply += f" Application ID: {data['loan_id']}."
    return reply


def _complaint(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    reply = f"Your complaint \"{fields.get('subject')}\" has been registered."
    if data.get("complaint_id"):
        reply += f" Reference: {data['complaint_id']}."
    return reply


def _lookup(data: dict[str, Any], fields: Mapping[str, Any]) -> str:
    results = data.get("results") or []
    if not results:
        return "I couldn't find specific information on that. A representative can help with more details."
    return "\n\n".join(item.get("text", "") for item in results if item.get("text"))


FORMATTERS: Mapping[TaskType, Callable[[dict[str, Any], Mapping[str, Any]], str]] = {
    TaskType.BALANCE_INQUIRY: _balance,
    TaskType.MINI_STATEMENT: _statement,
    TaskType.TRANSFER: _transfer,
    TaskType.CARD_BLOCK: _card_block,
    TaskType.LOAN_APPLICATION: _loan,
    TaskType.COMPLAINT: _complaint,
    TaskType.INFORMATION_LOOKUP: _lookup,
}


def failure_message(task: TaskType) -> str:
    return f"I'm sorry, I couldn't complete your {TASK_NAMES.get(task, 'request')} right now. Please try again later."


class OperationExecutor:
    """Run the banking operation for a completed task. No retries."""

    def __init__(self, backend: BankingBackend, *, timeout: float = 10.0) -> None:
        self._backend = backend
        self._timeout = timeout

    async def execute(
        self,
        task: TaskType,
        fields: Mapping[str, Any],
        *,
        auth_token: str | None = None,
    ) -> OperationOutcome:
        operation = OPERATIONS.get(task)
        if operation is None:
            return OperationOutcome(
                task=task.value,
                success=False,
                message="I'm not sure how to help with that yet. Could you tell me what you'd like to do?",
            )

        method_name, forwarded = operation
        kwargs = {name: fields.get(name) for name in forwarded}
        method = getattr(self._backend, method_name)
        try:
            data = await asyncio.wait_for(method(**kwargs, auth_token=auth_token), timeout=self._timeout)
        except (OperationError, asyncio.TimeoutError) as exc:
            logger.warning("Operation %s failed: %s", method_name, str(exc) or "timeout")
            return OperationOutcome(task=task.value, success=False, message=failure_message(task))

        logger.info("Operation %s succeeded", method_name)
        return OperationOutcome(
            task=task.value,
            success=True,
            message=FORMATTERS[task](data, fields),
            data=data,
        )
