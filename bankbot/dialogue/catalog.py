"""Static registry of banking tasks, their fields and validation rules.

Each task declares an ordered list of fields. The order is the order in which
the assistant asks for them: the first missing field is always the next
question. Validators are pure predicates with a fixed, user-facing error
message; they never touch conversation state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from .models import TaskType

CARD_ID_PATTERN = re.compile(r"^(?:\d{4}|card[_-]?\d+)$", re.IGNORECASE)
ACCOUNT_PATTERN = re.compile(r"^(?:[A-Z]{3}\d{3,}|\d{8,})$", re.IGNORECASE)

LOAN_TYPES = ("personal", "home", "car", "education")
BLOCK_REASONS = ("lost", "stolen", "damaged", "suspicious_activity")
COMPLAINT_CATEGORIES = ("transaction", "card", "loan", "account", "general")


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    error: str | None = None


VALID = ValidationResult(valid=True)

Validator = Callable[[Any], ValidationResult]


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


def number_between(minimum: float, maximum: float, *, error: str, too_large: str | None = None) -> Validator:
    """Accept numbers strictly above ``minimum`` and at most ``maximum``."""

    def check(value: Any) -> ValidationResult:
        number = _as_number(value)
        if number is None or number <= minimum:
            return ValidationResult(False, error)
        if number > maximum:
            return ValidationResult(False, too_large or error)
        return VALID

    return check


def whole_number_between(minimum: int, maximum: int, *, error: str) -> Validator:
    def check(value: Any) -> ValidationResult:
        number = _as_number(value)
        if number is None or not number.is_integer() or not minimum <= number <= maximum:
            return ValidationResult(False, error)
        return VALID

    return check


def one_of(choices: Iterable[str], *, error: str) -> Validator:
    allowed = frozenset(choices)

    def check(value: Any) -> ValidationResult:
        if not isinstance(value, str) or value.lower() not in allowed:
            return ValidationResult(False, error)
        return VALID

    return check


def matches(pattern: re.Pattern[str], *, error: str) -> Validator:
    def check(value: Any) -> ValidationResult:
        if not pattern.match(str(value).strip()):
            return ValidationResult(False, error)
        return VALID

    return check


def text_length(minimum: int, maximum: int, *, error: str) -> Validator:
    def check(value: Any) -> ValidationResult:
        if not isinstance(value, str) or not minimum <= len(value.strip()) <= maximum:
            return ValidationResult(False, error)
        return VALID

    return check


def _accept(value: Any) -> ValidationResult:
    return VALID


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A single piece of information a task needs."""

    name: str
    prompt: str
    label: str
    validator: Validator = _accept
    required: bool = True
    choices: tuple[str, ...] = ()

    def validate(self, value: Any) -> ValidationResult:
        return self.validator(value)

    def is_choice(self, value: Any) -> bool:
        return isinstance(value, str) and value.lower() in self.choices


@dataclass(frozen=True, slots=True)
class StepDescriptor:
    id: str
    description: str
    fields: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TaskDefinition:
    task: TaskType
    description: str
    fields: tuple[FieldSpec, ...] = ()
    steps: tuple[StepDescriptor, ...] = ()
    requires_confirmation: bool = True

    @property
    def required_fields(self) -> list[str]:
        return [spec.name for spec in self.fields if spec.required]

    @property
    def optional_fields(self) -> list[str]:
        return [spec.name for spec in self.fields if not spec.required]

    def field_spec(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


class TaskCatalog:
    """Lookup of task definitions. Unknown tasks resolve to the general inquiry."""

    def __init__(
        self,
        *,
        max_loan_amount: float = 1_000_000,
        max_loan_tenure_months: int = 360,
        max_transfer_amount: float = 1_000_000,
    ) -> None:
        self.max_loan_amount = max_loan_amount
        self.max_loan_tenure_months = max_loan_tenure_months
        self.max_transfer_amount = max_transfer_amount
        self._definitions: dict[TaskType, TaskDefinition] = {
            definition.task: definition for definition in self._build_definitions()
        }

    @classmethod
    def from_settings(cls, settings: Any) -> "TaskCatalog":
        return cls(
            max_loan_amount=settings.max_loan_amount,
            max_loan_tenure_months=settings.max_loan_tenure_months,
            max_transfer_amount=settings.max_transfer_amount,
        )

    def get_task_definition(self, task: TaskType | str | None) -> TaskDefinition:
        try:
            key = TaskType(task) if task is not None else TaskType.GENERAL_INQUIRY
        except ValueError:
            key = TaskType.GENERAL_INQUIRY
        return self._definitions.get(key, self._definitions[TaskType.GENERAL_INQUIRY])

    def compute_missing_fields(self, task: TaskType | str | None, collected: Mapping[str, Any]) -> list[str]:
        """Required fields absent from ``collected``, in declared order."""

        return [
            name
            for name in self.get_task_definition(task).required_fields
            if collected.get(name) is None
        ]

    def validate_field(self, task: TaskType | str | None, name: str, value: Any) -> ValidationResult:
        spec = self.get_task_definition(task).field_spec(name)
        if spec is None:
            return VALID
        return spec.validate(value)

    def tasks(self) -> Sequence[TaskDefinition]:
        return list(self._definitions.values())

    def _build_definitions(self) -> list[TaskDefinition]:
        max_loan = f"{self.max_loan_amount:,.0f}"
        max_transfer = f"{self.max_transfer_amount:,.0f}"

        return [
            TaskDefinition(
                task=TaskType.BALANCE_INQUIRY,
                description="Check current account balance and available funds",
                steps=(StepDescriptor("fetch_balance", "Retrieve current account balance"),),
                requires_confirmation=False,
            ),
            TaskDefinition(
                task=TaskType.MINI_STATEMENT,
                description="Show the most recent account transactions",
                steps=(StepDescriptor("fetch_transactions", "Retrieve recent transactions"),),
                requires_confirmation=False,
            ),
            TaskDefinition(
                task=TaskType.TRANSFER,
                description="Transfer money to another account",
                fields=(
                    FieldSpec(
                        name="to_account",
                        label="Recipient account",
                        prompt="Please provide the recipient's account number.",
                        validator=matches(
                            ACCOUNT_PATTERN,
                            error="That doesn't look like an account number. Please provide at least 8 digits, or 3 letters followed by digits.",
                        ),
                    ),
                    FieldSpec(
                        name="amount",
                        label="Amount",
                        prompt="What amount would you like to transfer?",
                        validator=number_between(
                            0,
                            self.max_transfer_amount,
                            error="Please provide a valid transfer amount greater than $0.",
                            too_large=f"Transfers cannot exceed ${max_transfer}. Please enter a smaller amount.",
                        ),
                    ),
                    FieldSpec(
                        name="description",
                        label="Description",
                        prompt="Please provide a short description for this transfer.",
                        validator=text_length(
                            1, 255, error="Please keep the description under 255 characters."
                        ),
                    ),
                ),
                steps=(
                    StepDescriptor("identify_recipient", "Collect the recipient account", ("to_account",)),
                    StepDescriptor("transfer_details", "Collect amount and description", ("amount", "description")),
                    StepDescriptor("confirm_transfer", "Confirm transfer details"),
                    StepDescriptor("execute_transfer", "Send the money"),
                ),
            ),
            TaskDefinition(
                task=TaskType.CARD_BLOCK,
                description="Block a lost, stolen, or compromised card",
                fields=(
                    FieldSpec(
                        name="card_id",
                        label="Card",
                        prompt="Please provide your card ID or the last 4 digits of your card.",
                        validator=matches(
                            CARD_ID_PATTERN,
                            error="Please provide exactly 4 digits for the last four digits of your card.",
                        ),
                    ),
                    FieldSpec(
                        name="reason",
                        label="Reason",
                        prompt="Why would you like to block the card? (lost, stolen, damaged, or suspicious activity)",
                        validator=one_of(
                            BLOCK_REASONS,
                            error="Please specify a valid reason: lost, stolen, damaged, or suspicious activity.",
                        ),
                        required=False,
                        choices=BLOCK_REASONS,
                    ),
                ),
                steps=(
                    StepDescriptor("identify_card", "Identify the card to be blocked", ("card_id",)),
                    StepDescriptor("confirm_blocking", "Confirm card blocking details"),
                    StepDescriptor("execute_block", "Block the card"),
                ),
            ),
            TaskDefinition(
                task=TaskType.LOAN_APPLICATION,
                description="Process a loan application",
                fields=(
                    FieldSpec(
                        name="loan_type",
                        label="Type",
                        prompt="What type of loan are you looking for? We offer personal, home, car, and education loans.",
                        validator=one_of(
                            LOAN_TYPES,
                            error="Please specify the type of loan you want: personal, home, car, or education.",
                        ),
                        choices=LOAN_TYPES,
                    ),
                    FieldSpec(
                        name="amount",
                        label="Amount",
                        prompt="What is the loan amount you need?",
                        validator=number_between(
                            0,
                            self.max_loan_amount,
                            error="Please provide a valid loan amount greater than $0.",
                            too_large=(
                                f"Loan amount cannot exceed ${max_loan}. "
                                "Please contact a loan specialist for larger amounts."
                            ),
                        ),
                    ),
                    FieldSpec(
                        name="tenure",
                        label="Tenure (months)",
                        prompt="What is your preferred loan tenure in months?",
                        validator=whole_number_between(
                            1,
                            self.max_loan_tenure_months,
                            error=(
                                "Please provide the loan tenure as a whole number of months "
                                f"between 1 and {self.max_loan_tenure_months}."
                            ),
                        ),
                    ),
                ),
                steps=(
                    StepDescriptor("gather_basic_info", "Collect loan type and amount", ("loan_type", "amount")),
                    StepDescriptor("gather_tenure", "Collect repayment tenure", ("tenure",)),
                    StepDescriptor("confirm_details", "Confirm all loan application details"),
                    StepDescriptor("submit_application", "Submit the loan application"),
                ),
            ),
            TaskDefinition(
                task=TaskType.COMPLAINT,
                description="File a support complaint",
                fields=(
                    FieldSpec(
                        name="subject",
                        label="Subject",
                        prompt="What is the subject of your complaint?",
                        validator=text_length(
                            5, 200, error="Please give your complaint a subject of 5 to 200 characters."
                        ),
                    ),
                    FieldSpec(
                        name="description",
                        label="Description",
                        prompt="Please provide a detailed description of your complaint.",
                        validator=text_length(
                            10,
                            1000,
                            error="Please describe the problem in 10 to 1000 characters.",
                        ),
                    ),
                    FieldSpec(
                        name="category",
                        label="Category",
                        prompt="What category does this complaint fall under? (transaction, card, loan, account, or general)",
                        validator=one_of(
                            COMPLAINT_CATEGORIES,
                            error="Please choose a category: transaction, card, loan, account, or general.",
                        ),
                        choices=COMPLAINT_CATEGORIES,
                    ),
                ),
                steps=(
                    StepDescriptor("describe_issue", "Collect subject and description", ("subject", "description")),
                    StepDescriptor("categorise", "Collect complaint category", ("category",)),
                    StepDescriptor("confirm_complaint", "Confirm complaint details"),
                    StepDescriptor("file_complaint", "File the complaint"),
                ),
            ),
            TaskDefinition(
                task=TaskType.INFORMATION_LOOKUP,
                description="Search banking information, products, rules and policies",
                fields=(
                    FieldSpec(
                        name="query",
                        label="Question",
                        prompt="What would you like to know?",
                        validator=text_length(1, 500, error="Please keep your question under 500 characters."),
                    ),
                ),
                steps=(StepDescriptor("search_documents", "Search banking documentation", ("query",)),),
                requires_confirmation=False,
            ),
            TaskDefinition(
                task=TaskType.GENERAL_INQUIRY,
                description="Handle general banking questions and information requests",
                steps=(StepDescriptor("process_inquiry", "Process general banking inquiry"),),
                requires_confirmation=False,
            ),
        ]
