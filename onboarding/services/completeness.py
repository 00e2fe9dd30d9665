"""Profile and document completeness scoring.

Pure functions only: callers hand in the merchant's profile values and the
storage locators of its active required documents, and get back the two
0–100 scores. Being incomplete is a normal state, never an error.

    profile   = round(70 * required_filled / 7 + 30 * optional_filled / 4)
    documents = round(100 * present_required_documents / 3)

Rounding is half-up (``77.5 -> 78``), not Python's banker's rounding.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from onboarding.domain.document import REQUIRED_DOCUMENT_TYPES

REQUIRED_PROFILE_FIELDS: tuple[str, ...] = (
    "business_name",
    "email",
    "phone",
    "business_type",
    "description",
    "address",
    "location",
)
OPTIONAL_PROFILE_FIELDS: tuple[str, ...] = (
    "website",
    "year_established",
    "logo",
    "business_hours",
)

REQUIRED_WEIGHT = 70
OPTIONAL_WEIGHT = 30


@dataclass(frozen=True)
class Completeness:
    profile: int
    documents: int
    missing_documents: tuple[str, ...] = field(default_factory=tuple)

    @property
    def documents_complete(self) -> bool:
        return self.documents == 100


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_filled(value: Any) -> bool:
    """Present, and for strings non-blank, for containers non-empty."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (Mapping, list, tuple, set)):
        return len(value) > 0
    return True


def missing_profile_fields(profile: Mapping[str, Any]) -> list[str]:
    return [name for name in REQUIRED_PROFILE_FIELDS if not is_filled(profile.get(name))]


def profile_completeness(profile: Mapping[str, Any]) -> int:
    required = sum(1 for name in REQUIRED_PROFILE_FIELDS if is_filled(profile.get(name)))
    optional = sum(1 for name in OPTIONAL_PROFILE_FIELDS if is_filled(profile.get(name)))
    score = (
        REQUIRED_WEIGHT * required / len(REQUIRED_PROFILE_FIELDS)
        + OPTIONAL_WEIGHT * optional / len(OPTIONAL_PROFILE_FIELDS)
    )
    return round_half_up(score)


def missing_documents(locators: Mapping[str, str | None]) -> list[str]:
    return [
        doc_type.value
        for doc_type in REQUIRED_DOCUMENT_TYPES
        if not is_filled(locators.get(doc_type.value))
    ]


def documents_completeness(locators: Mapping[str, str | None]) -> int:
    total = len(REQUIRED_DOCUMENT_TYPES)
    present = total - len(missing_documents(locators))
    return round_half_up(100 * present / total)


def calculate(profile: Mapping[str, Any], locators: Mapping[str, str | None]) -> Completeness:
    return Completeness(
        profile=profile_completeness(profile),
        documents=documents_completeness(locators),
        missing_documents=tuple(missing_documents(locators)),
    )


def profile_of(merchant: Any) -> dict[str, Any]:
    """Extract the scored profile fields from a merchant-like object."""
    return {
        name: getattr(merchant, name, None)
        for name in (*REQUIRED_PROFILE_FIELDS, *OPTIONAL_PROFILE_FIELDS)
    }
