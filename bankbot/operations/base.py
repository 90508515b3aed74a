"""Banking back-end interface and the executor's result type."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class OperationOutcome:
    """Result of executing a task against the banking back end."""

    task: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class BankingBackend(ABC):
    """Operations the assistant can perform on a customer's behalf.

    Every method returns the operation's payload and raises
    ``OperationError`` when the back end rejects or fails the request.
    """

    @abstractmethod
    async def balance_inquiry(self, *, auth_token: str | None = None) -> dict[str, Any]:
        """Return the current account balance."""

    @abstractmethod
    async def mini_statement(self, *, auth_token: str | None = None) -> dict[str, Any]:
        """Return the most recent transactions."""

    @abstractmethod
    async def transfer(
        self,
        to_account: str,
        amount: float,
        description: str | None = None,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        """Send money to another account."""

    @abstractmethod
    async def card_block(self, card_id: str, *, auth_token: str | None = None) -> dict[str, Any]:
        """Block a card."""

    @abstractmethod
    async def loan_apply(
        self,
        loan_type: str,
        amount: float,
        tenure: int,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        """Submit a loan application."""

    @abstractmethod
    async def complaint_file(
        self,
        subject: str,
        description: str,
        category: str,
        *,
        auth_token: str | None = None,
    ) -> dict[str, Any]:
        """Raise a support complaint."""

    @abstractmethod
    async def information_lookup(self, query: str, *, auth_token: str | None = None) -> dict[str, Any]:
        """Search the bank's product and policy knowledge base."""

    def describe(self) -> str:
        return self.__doc__ or type(self).__name__
