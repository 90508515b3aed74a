import pytest

from bankbot.core.errors import ClassificationError
from bankbot.dialogue.extractor import SlotExtractor
from bankbot.dialogue.models import TaskType


@pytest.fixture()
def extractor(catalog):
    return SlotExtractor(catalog)


@pytest.mark.parametrize(
    ("utterance", "expected"),
    [
        ("I need 50k", 50000),
        ("about 2 lakh", 200000),
        ("$1,500.50 please", 1500.5),
        ("a loan of 75000", 75000),
        ("1.5 million", 1500000),
    ],
)
def test_anchored_amounts_are_parsed_from_any_turn(extractor, utterance, expected):
    found = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, utterance)

    assert found["amount"] == expected


def test_bare_number_fills_only_the_awaited_field(extractor):
    as_amount = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "50000", awaited="amount")
    as_tenure = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "36", awaited="tenure")
    unanchored = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "50000")

    assert as_amount == {"amount": 50000}
    assert as_tenure == {"tenure": 36}
    assert unanchored == {}


def test_tenure_units_are_converted_to_months(extractor):
    assert extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "3 years")["tenure"] == 36
    found = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "36 months", awaited="amount")
    assert found == {"tenure": 36}


def test_loan_type_word_is_lowercased(extractor):
    found = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "A Personal loan please")

    assert found["loan_type"] == "personal"


def test_card_block_details(extractor):
    found = extractor.extract_deterministic(TaskType.CARD_BLOCK, "my card ending 1234 was stolen")

    assert found == {"card_id": "1234", "reason": "stolen"}


def test_suspicious_activity_reason(extractor):
    found = extractor.extract_deterministic(TaskType.CARD_BLOCK, "block card-42, I saw fraudulent charges")

    assert found == {"card_id": "card-42", "reason": "suspicious_activity"}


def test_transfer_details_in_one_sentence(extractor):
    found = extractor.extract_deterministic(TaskType.TRANSFER, "send 500 to ABC12345 for rent")

    assert found == {"to_account": "ABC12345", "amount": 500, "description": "rent"}


def test_wanted_restricts_the_fields(extractor):
    found = extractor.extract_deterministic(
        TaskType.TRANSFER, "send 500 to ABC12345", wanted=["amount"]
    )

    assert found == {"amount": 500}


def test_extraction_is_idempotent(extractor):
    first = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "personal loan of 20k for 2 years")
    second = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "personal loan of 20k for 2 years")

    assert first == second == {"loan_type": "personal", "amount": 20000, "tenure": 24}


def test_tasks_without_fields_extract_nothing(extractor):
    assert extractor.extract_deterministic(TaskType.BALANCE_INQUIRY, "balance of 500") == {}


@pytest.mark.asyncio
async def test_collaborator_fills_awaited_field_when_rules_fail(catalog, make_classifier):
    classifier = make_classifier(fields={"one for a house please": {"loan_type": "Home"}})
    extractor = SlotExtractor(catalog, classifier)

    found = await extractor.extract(TaskType.LOAN_APPLICATION, "one for a house please", awaited="loan_type")

    assert found == {"loan_type": "home"}


@pytest.mark.asyncio
async def test_collaborator_values_are_normalised(catalog, make_classifier):
    classifier = make_classifier(fields={"fifty thousand": {"amount": "50k"}})
    extractor = SlotExtractor(catalog, classifier)

    found = await extractor.extract(TaskType.LOAN_APPLICATION, "fifty thousand", awaited="amount")

    assert found == {"amount": 50000}


@pytest.mark.asyncio
async def test_collaborator_not_consulted_when_rules_succeed(catalog, make_classifier):
    classifier = make_classifier(fields={"36": {"tenure": 12}})
    extractor = SlotExtractor(catalog, classifier)

    found = await extractor.extract(TaskType.LOAN_APPLICATION, "36", awaited="tenure")

    assert found == {"tenure": 36}


@pytest.mark.asyncio
async def test_collaborator_failure_keeps_rule_results(catalog):
    class Failing:
        async def extract_fields(self, task, utterance, fields):
            raise ClassificationError("offline")

    extractor = SlotExtractor(catalog, Failing())

    found = await extractor.extract(TaskType.LOAN_APPLICATION, "something odd", awaited="amount")

    assert found == {}


def test_scaled_amounts_have_no_float_residue(extractor):
    found = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "1.1k")

    assert found["amount"] == 1100
    assert isinstance(found["amount"], int)


def test_fractional_years_become_whole_months(extractor):
    found = extractor.extract_deterministic(TaskType.LOAN_APPLICATION, "3.5 years")

    assert found["tenure"] == 42
    assert isinstance(found["tenure"], int)
