from bankbot.dialogue.catalog import TaskCatalog
from bankbot.dialogue.models import TaskType


def test_missing_fields_follow_declared_order(catalog):
    missing = catalog.compute_missing_fields(TaskType.LOAN_APPLICATION, {"amount": 5000})

    assert missing == ["loan_type", "tenure"]


def test_missing_fields_treat_none_as_absent(catalog):
    missing = catalog.compute_missing_fields("transfer", {"to_account": None, "amount": 10, "description": "rent"})

    assert missing == ["to_account"]


def test_optional_fields_are_never_missing(catalog):
    definition = catalog.get_task_definition(TaskType.CARD_BLOCK)

    assert definition.required_fields == ["card_id"]
    assert definition.optional_fields == ["reason"]
    assert catalog.compute_missing_fields(TaskType.CARD_BLOCK, {"card_id": "1234"}) == []


def test_unknown_task_resolves_to_general_inquiry(catalog):
    assert catalog.get_task_definition("mortgage_refinance").task is TaskType.GENERAL_INQUIRY
    assert catalog.get_task_definition(None).task is TaskType.GENERAL_INQUIRY
    assert catalog.get_task_definition(TaskType.GENERAL_INQUIRY).fields == ()


def test_zero_field_tasks_skip_confirmation(catalog):
    for task in (TaskType.BALANCE_INQUIRY, TaskType.MINI_STATEMENT):
        definition = catalog.get_task_definition(task)
        assert definition.required_fields == []
        assert definition.requires_confirmation is False


def test_loan_amount_validation_messages(catalog):
    negative = catalog.validate_field(TaskType.LOAN_APPLICATION, "amount", -500)
    zero = catalog.validate_field(TaskType.LOAN_APPLICATION, "amount", 0)
    too_large = catalog.validate_field(TaskType.LOAN_APPLICATION, "amount", 2_000_000)

    assert not negative.valid
    assert negative.error == "Please provide a valid loan amount greater than $0."
    assert not zero.valid
    assert not too_large.valid
    assert too_large.error == (
        "Loan amount cannot exceed $1,000,000. Please contact a loan specialist for larger amounts."
    )
    assert catalog.validate_field(TaskType.LOAN_APPLICATION, "amount", 50000).valid


def test_loan_limits_come_from_configuration():
    catalog = TaskCatalog(max_loan_amount=5000, max_loan_tenure_months=60)

    result = catalog.validate_field(TaskType.LOAN_APPLICATION, "amount", 6000)
    assert not result.valid
    assert "$5,000" in result.error
    assert not catalog.validate_field(TaskType.LOAN_APPLICATION, "tenure", 72).valid
    assert catalog.validate_field(TaskType.LOAN_APPLICATION, "tenure", 60).valid


def test_tenure_must_be_whole_months(catalog):
    assert catalog.validate_field(TaskType.LOAN_APPLICATION, "tenure", 36).valid
    assert not catalog.validate_field(TaskType.LOAN_APPLICATION, "tenure", 36.5).valid
    assert not catalog.validate_field(TaskType.LOAN_APPLICATION, "tenure", 0).valid
    assert not catalog.validate_field(TaskType.LOAN_APPLICATION, "tenure", 361).valid


def test_loan_type_is_a_closed_choice(catalog):
    assert catalog.validate_field(TaskType.LOAN_APPLICATION, "loan_type", "personal").valid
    result = catalog.validate_field(TaskType.LOAN_APPLICATION, "loan_type", "yacht")
    assert not result.valid
    assert "personal, home, car, or education" in result.error


def test_card_and_account_identifiers(catalog):
    assert catalog.validate_field(TaskType.CARD_BLOCK, "card_id", "1234").valid
    assert catalog.validate_field(TaskType.CARD_BLOCK, "card_id", "card-7").valid
    assert not catalog.validate_field(TaskType.CARD_BLOCK, "card_id", "12345").valid
    assert catalog.validate_field(TaskType.TRANSFER, "to_account", "ABC12345").valid
    assert catalog.validate_field(TaskType.TRANSFER, "to_account", "9876543210").valid
    assert not catalog.validate_field(TaskType.TRANSFER, "to_account", "12").valid


def test_complaint_text_lengths(catalog):
    assert not catalog.validate_field(TaskType.COMPLAINT, "subject", "Fee").valid
    assert catalog.validate_field(TaskType.COMPLAINT, "subject", "Double charge").valid
    assert not catalog.validate_field(TaskType.COMPLAINT, "description", "too short").valid
    assert catalog.validate_field(TaskType.COMPLAINT, "category", "card").valid
    assert not catalog.validate_field(TaskType.COMPLAINT, "category", "weather").valid


def test_every_task_declares_steps(catalog):
    for definition in catalog.tasks():
        assert definition.steps, definition.task
