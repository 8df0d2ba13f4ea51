"""
Abstract base class for the category calculators.

Input: QuoteSnapshot (flattened pieces), CatalogSnapshot, RateOverrides
Output: CategoryResult (subtotal, line items, summary, data-gap warnings)

Calculators are pure. They never touch the database and never discount;
discounts are applied afterwards by stonequote.pricing.discounts.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..errors import DataGapWarning
from ..money import ZERO, money, quantity
from ..pricing.snapshot import CatalogSnapshot, QuoteSnapshot, RateOverrides

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryResult:
    category: str
    subtotal: Decimal
    items: tuple = ()
    summary: dict = field(default_factory=dict)
    warnings: tuple = ()


class BaseCategoryCalculator(ABC):
    """All category calculators inherit from this."""

    category = ""

    @abstractmethod
    def calculate(self, quote: QuoteSnapshot, catalog: CatalogSnapshot,
                  overrides: RateOverrides) -> CategoryResult:
        """
        Price one category for every piece on the quote.
        The same inputs always produce the same result.
        """
        pass

    # --- Helper methods for all calculators ---

    def apply_minimum_charge(self, amount: Decimal, minimum_charge: Optional[Decimal]):
        """Clamp up to the minimum charge. Returns (amount, minimum_applied)."""
        if minimum_charge is not None and minimum_charge > ZERO and amount < minimum_charge:
            return minimum_charge, True
        return amount, False

    def pick_rate(self, entity_id, catalog_rate: Decimal, override_rates) -> tuple:
        """Returns (applied_rate, overridden) using a rule's custom rate when one won."""
        custom = override_rates.get(entity_id)
        if custom is not None:
            return custom, True
        return catalog_rate, False

    def gap(self, warnings: list, code: str, message: str, entity_id=None):
        """Record a data gap once per (code, entity)."""
        warning = DataGapWarning(code, message, entity_id)
        if warning not in warnings:
            warnings.append(warning)

    def make_result(self, items: list, warnings: list, summary: dict = None) -> CategoryResult:
        """Subtotal is the sum of the already-rounded line subtotals."""
        subtotal = sum((item["subtotal"] for item in items), ZERO)
        return CategoryResult(
            category=self.category,
            subtotal=money(subtotal),
            items=tuple(items),
            summary=summary or {},
            warnings=tuple(warnings),
        )

    def qty(self, value) -> Decimal:
        return quantity(value)
