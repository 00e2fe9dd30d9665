"""Tests for profile and document completeness scoring."""

import pytest

from onboarding.services import completeness

FULL_REQUIRED = {
    "business_name": "Blue Door Bakery",
    "email": "owner@bluedoor.example.com",
    "phone": "+1 555 0100",
    "business_type": "bakery",
    "description": "Sourdough",
    "address": "12 Harbour Street",
    "location": "Portside",
}


@pytest.mark.parametrize(
    "present, expected",
    [
        ([], 0),
        (["businessRegistration"], 33),
        (["businessRegistration", "idDocument"], 67),
        (["businessRegistration", "idDocument", "utilityBill"], 100),
    ],
)
def test_documents_completeness_steps(present, expected):
    locators = {doc_type: f"local://merchants/m1/{doc_type}/x.pdf" for doc_type in present}
    assert completeness.documents_completeness(locators) == expected


def test_blank_locator_does_not_count():
    locators = {
        "businessRegistration": "local://a.pdf",
        "idDocument": "   ",
        "utilityBill": None,
    }
    assert completeness.documents_completeness(locators) == 33
    assert completeness.missing_documents(locators) == ["idDocument", "utilityBill"]


def test_additional_documents_never_count():
    assert completeness.documents_completeness({"additionalDoc": "local://x.pdf"}) == 0


def test_profile_required_fields_only_is_70():
    assert completeness.profile_completeness(FULL_REQUIRED) == 70


def test_profile_everything_filled_is_100():
    profile = {
        **FULL_REQUIRED,
        "website": "https://bluedoor.example.com",
        "year_established": 2011,
        "logo": "https://cdn.example.com/logo.png",
        "business_hours": {"monday": {"open": "08:00", "close": "17:00"}},
    }
    assert completeness.profile_completeness(profile) == 100


def test_profile_weights_round_half_up():
    # 6/7 required = 60, 1/4 optional = 7.5 -> 67.5 -> 68
    profile = {**FULL_REQUIRED, "location": "", "website": "https://bluedoor.example.com"}
    assert completeness.profile_completeness(profile) == 68


def test_whitespace_and_empty_containers_are_missing():
    profile = {**FULL_REQUIRED, "phone": "   ", "business_hours": {}}
    assert completeness.missing_profile_fields(profile) == ["phone"]
    assert completeness.profile_completeness(profile) == 60


def test_round_half_up_is_not_bankers_rounding():
    assert completeness.round_half_up(2.5) == 3
    assert completeness.round_half_up(66.66) == 67
    assert completeness.round_half_up(33.33) == 33


def test_calculate_reports_missing_documents():
    result = completeness.calculate(FULL_REQUIRED, {"idDocument": "local://id.png"})
    assert result.profile == 70
    assert result.documents == 33
    assert result.missing_documents == ("businessRegistration", "utilityBill")
    assert not result.documents_complete
