"""Search predicate for the catalog, independent of the storage backend.

A :class:`SweetQuery` holds the optional search parameters. Parameter kinds
combine with AND; the free-text term matches name OR description as a
case-insensitive substring. The SQL translation lives in
:func:`sweetshop.catalog.build_filters`.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .errors import ValidationError

ALL_CATEGORIES = "All"


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_price(raw, name: str) -> Optional[float]:
    if _blank(raw):
        return None
    try:
        price = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(price):
        raise ValidationError(f"{name} must be a number")
    return price


@dataclass(frozen=True)
class SweetQuery:
    text: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @classmethod
    def from_params(
        cls, q=None, category=None, min_price=None, max_price=None
    ) -> "SweetQuery":
        """Normalize raw query-string values.

        Blank values count as absent and the ``"All"`` category lifts the
        category restriction. Prices that do not parse raise ValidationError.
        """
        text = None if _blank(q) else q.strip()
        if _blank(category) or category == ALL_CATEGORIES:
            category = None
        return cls(
            text=text,
            category=category,
            min_price=_parse_price(min_price, "minPrice"),
            max_price=_parse_price(max_price, "maxPrice"),
        )

    @property
    def is_unrestricted(self) -> bool:
        return (
            self.text is None
            and self.category is None
            and self.min_price is None
            and self.max_price is None
        )

    def matches(self, sweet) -> bool:
        """Evaluate the predicate against any object with sweet attributes."""
        if self.text is not None:
            needle = self.text.lower()
            name = (sweet.name or "").lower()
            description = (sweet.description or "").lower()
            if needle not in name and needle not in description:
                return False
        if self.category is not None and sweet.category != self.category:
            return False
        if self.min_price is not None and sweet.price < self.min_price:
            return False
        if self.max_price is not None and sweet.price > self.max_price:
            return False
        return True
