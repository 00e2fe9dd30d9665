"""Standardized JSON response envelope helpers.

Every success body is `{ data: ... }`; list endpoints add `meta`. Errors use
the `{ error: {...} }` envelope built in :mod:`onboarding.core.exceptions`.
"""


import math
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from onboarding.core.pagination import PageMeta

T = TypeVar("T")

_ENVELOPE_CONFIG = {
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class DataResponse(BaseModel, Generic[T]):
    """Single-item (or plain list) envelope: `{ data: ... }`"""

    data: T

    model_config = _ENVELOPE_CONFIG


class ListResponse(BaseModel, Generic[T]):
    """Paginated list envelope: `{ data: [...], meta: {total, page, limit, pages} }`"""

    data: list[T]
    meta: PageMeta

    model_config = _ENVELOPE_CONFIG


def paginated(items: list, total: int, page: int, limit: int) -> dict:
    """Build a paginated response dict for use with ListResponse."""
    return {
        "data": items,
        "meta": {
            "total": total,
            "page": page,
            "limit": limit,
            # An empty result is still one (empty) page
            "pages": max(1, math.ceil(total / limit)) if limit else 1,
        },
    }
