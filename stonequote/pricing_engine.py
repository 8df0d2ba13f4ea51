"""
Quote Pricing Engine.

Turns a quote (rooms, pieces, edges, cutouts) into an itemized, discounted
CalculationResult.

    compute_base_totals   pass-1 calculators at catalog rates
    resolve_rules         applicable rules for the customer, ordered
    compute_final_totals  rate overrides, pass-2 calculators, discounts
    assemble              delivery, templating, manual overrides, tax

Input: QuoteSnapshot + CatalogSnapshot (read once, up front)
Output: CalculationResult

The engine never writes. Caching the result on the quote and writing a
version snapshot is up to the caller.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional

from sqlalchemy.orm import Session

from .calculators.base import CategoryResult
from .calculators.registry import CALCULATOR_REGISTRY, DISCOUNTABLE_CATEGORIES
from .errors import NotFoundError, ValidationError
from .money import HUNDRED, ZERO, money
from .pricing import catalog as catalog_reader
from .pricing.discounts import DiscountOutcome, apply_discounts, collect_rate_overrides
from .pricing.rules import resolve_rules
from .pricing.snapshot import NO_OVERRIDES, CatalogSnapshot, PriceBookSpec, QuoteSnapshot, RateOverrides
from . import schemas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryTotals:
    """One full run of the category calculators."""
    results: Mapping[str, CategoryResult]
    overrides: RateOverrides = NO_OVERRIDES

    def subtotal(self, category: str) -> Decimal:
        return self.results[category].subtotal

    @property
    def pieces_subtotal(self) -> Decimal:
        return sum((r.subtotal for r in self.results.values()), ZERO)

    @property
    def warnings(self) -> list:
        seen = []
        for result in self.results.values():
            for warning in result.warnings:
                if warning not in seen:
                    seen.append(warning)
        return seen


@dataclass(frozen=True)
class FinalTotals:
    categories: CategoryTotals
    outcome: DiscountOutcome
    resolved_rules: tuple = ()
    price_book: Optional[PriceBookSpec] = None
    warnings: tuple = field(default_factory=tuple)


def parse_quote_id(value) -> int:
    """Accepts a positive int or its decimal string form."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid quote id: {value!r}")
    if isinstance(value, int):
        quote_id = value
    elif isinstance(value, str) and value.strip().isdigit():
        quote_id = int(value.strip())
    else:
        raise ValidationError(f"Invalid quote id: {value!r}")
    if quote_id <= 0:
        raise ValidationError(f"Invalid quote id: {value!r}")
    return quote_id


class PricingEngine:
    """
    Stateless: one instance can price any number of quotes, including
    concurrently from independent callers.
    """

    def __init__(self, calculators: dict = None):
        registry = calculators or CALCULATOR_REGISTRY
        self.calculators = {category: cls() for category, cls in registry.items()}

    def calculate(self, quote: QuoteSnapshot, catalog: CatalogSnapshot,
                  price_book_id: Optional[int] = None,
                  calculated_at: Optional[datetime] = None) -> schemas.CalculationResult:
        base = self.compute_base_totals(quote, catalog)
        price_book = self.select_price_book(quote, catalog, price_book_id)
        resolved = self.resolve_rules(quote, catalog, base, price_book)
        final = self.compute_final_totals(quote, catalog, resolved, price_book)
        return self.assemble(quote, catalog, final, calculated_at=calculated_at)

    # --- Stage 1 ---

    def compute_base_totals(self, quote: QuoteSnapshot, catalog: CatalogSnapshot,
                            overrides: RateOverrides = NO_OVERRIDES) -> CategoryTotals:
        results = {
            category: calculator.calculate(quote, catalog, overrides)
            for category, calculator in self.calculators.items()
        }
        return CategoryTotals(results=results, overrides=overrides)

    # --- Stage 2 ---

    def select_price_book(self, quote: QuoteSnapshot, catalog: CatalogSnapshot,
                          price_book_id: Optional[int] = None) -> Optional[PriceBookSpec]:
        """Pinned price book, else the quote's, else the customer's."""
        if price_book_id is None:
            price_book_id = quote.price_book_id
        if price_book_id is None and quote.customer is not None:
            price_book_id = quote.customer.price_book_id
        if price_book_id is None:
            return None
        price_book = catalog.price_books.get(price_book_id)
        if price_book is None:
            raise NotFoundError(f"Price book {price_book_id} not found")
        return price_book

    def resolve_rules(self, quote: QuoteSnapshot, catalog: CatalogSnapshot,
                      base: CategoryTotals, price_book: Optional[PriceBookSpec] = None) -> tuple:
        # Thresholds are matched against the full pass-1 piece subtotal, services included
        return resolve_rules(catalog.rules, quote.customer, price_book, base.pieces_subtotal)

    # --- Stage 3 ---

    def compute_final_totals(self, quote: QuoteSnapshot, catalog: CatalogSnapshot,
                             resolved_rules: tuple,
                             price_book: Optional[PriceBookSpec] = None) -> FinalTotals:
        resolution = collect_rate_overrides(resolved_rules)
        categories = self.compute_base_totals(quote, catalog, resolution.overrides)
        outcome = apply_discounts(
            resolved_rules,
            {c: categories.subtotal(c) for c in DISCOUNTABLE_CATEGORIES},
            resolution.winners,
        )
        return FinalTotals(
            categories=categories,
            outcome=outcome,
            resolved_rules=resolved_rules,
            price_book=price_book,
            warnings=tuple(categories.warnings),
        )

    # --- Stage 4 ---

    def assemble(self, quote: QuoteSnapshot, catalog: CatalogSnapshot, final: FinalTotals,
                 calculated_at: Optional[datetime] = None) -> schemas.CalculationResult:
        results = final.categories.results
        outcome = final.outcome

        materials = results["materials"]
        edges = results["edges"]
        cutouts = results["cutouts"]
        services = results["services"]

        delivery_cost = self._final_cost(quote.override_delivery_cost, quote.delivery_cost)
        templating_cost = self._final_cost(quote.override_templating_cost, quote.templating_cost)

        subtotal = money(
            outcome.totals["materials"] + outcome.totals["edges"] + outcome.totals["cutouts"]
            + services.subtotal + delivery_cost + templating_cost
        )

        # Manual overrides replace the computed figures outright
        if quote.override_total is not None:
            total = money(quote.override_total)
        elif quote.override_subtotal is not None:
            total = money(quote.override_subtotal)
        else:
            total = subtotal

        pricing = catalog.pricing
        tax_amount = money(total * pricing.tax_rate / HUNDRED)

        for warning in final.warnings:
            logger.warning("Quote %s: %s", quote.quote_number, warning.message)

        breakdown = schemas.Breakdown(
            materials=schemas.MaterialBreakdown(
                pricing_basis=materials.summary["pricing_basis"],
                total_area_sqm=materials.summary["total_area_sqm"],
                priced_area_sqm=materials.summary["priced_area_sqm"],
                slab_count=materials.summary["slab_count"],
                items=[schemas.MaterialLine(**item) for item in materials.items],
                subtotal=materials.subtotal,
                discount=outcome.discounts["materials"],
                total=outcome.totals["materials"],
            ),
            edges=schemas.EdgeBreakdown(
                total_linear_metres=edges.summary["total_linear_metres"],
                items=[schemas.EdgeLine(**item) for item in edges.items],
                subtotal=edges.subtotal,
                discount=outcome.discounts["edges"],
                total=outcome.totals["edges"],
            ),
            cutouts=schemas.CutoutBreakdown(
                total_cutouts=cutouts.summary["total_cutouts"],
                items=[schemas.CutoutLine(**item) for item in cutouts.items],
                subtotal=cutouts.subtotal,
                discount=outcome.discounts["cutouts"],
                total=outcome.totals["cutouts"],
            ),
            services=schemas.ServiceBreakdown(
                items=[schemas.ServiceLine(**item) for item in services.items],
                subtotal=services.subtotal,
                total=services.subtotal,
            ),
            delivery=schemas.DeliveryBreakdown(
                address=quote.delivery_address,
                distance_km=quote.delivery_distance_km,
                zone=quote.delivery_zone,
                calculated_cost=quote.delivery_cost,
                override_cost=quote.override_delivery_cost,
                final_cost=delivery_cost,
            ),
            templating=schemas.TemplatingBreakdown(
                required=quote.templating_required,
                distance_km=quote.templating_distance_km,
                calculated_cost=quote.templating_cost,
                override_cost=quote.override_templating_cost,
                final_cost=templating_cost,
            ),
        )

        result = schemas.CalculationResult(
            quote_id=quote.quote_id,
            quote_number=quote.quote_number,
            currency=pricing.currency,
            subtotal=subtotal,
            total_discount=money(outcome.total_discount),
            total=total,
            tax_rate=pricing.tax_rate,
            tax_amount=tax_amount,
            total_including_tax=money(total + tax_amount),
            breakdown=breakdown,
            applied_rules=[schemas.AppliedRule(**r) for r in outcome.applied_rules],
            discounts=[schemas.DiscountRecord(**d) for d in outcome.discount_records],
            price_book=schemas.PriceBookRef(id=final.price_book.id, name=final.price_book.name)
            if final.price_book else None,
            overrides=schemas.QuoteOverrides(
                subtotal=quote.override_subtotal,
                total=quote.override_total,
                reason=quote.override_reason,
            ),
            warnings=[schemas.DataGap(**w.to_dict()) for w in final.warnings],
            calculated_at=calculated_at or datetime.utcnow(),
        )

        logger.info(
            "Priced quote %s: subtotal=%s discount=%s total=%s rules=%d",
            quote.quote_number, subtotal, result.total_discount, total, len(result.applied_rules),
        )
        return result

    def _final_cost(self, override: Optional[Decimal], calculated: Optional[Decimal]) -> Decimal:
        if override is not None:
            return money(override)
        if calculated is not None:
            return money(calculated)
        return money(ZERO)


def calculate_quote_price(db: Session, quote_id, price_book_id: Optional[int] = None,
                          calculated_at: Optional[datetime] = None) -> schemas.CalculationResult:
    """
    Price a quote from the database.

    Args:
        quote_id: int or numeric string
        price_book_id: pin a price book for preview, ignoring the quote's own
        calculated_at: timestamp to stamp on the result (defaults to now)

    Raises:
        ValidationError: bad quote id, inconsistent rule, impossible piece
        NotFoundError: quote or price book missing
    """
    quote_id = parse_quote_id(quote_id)
    quote = catalog_reader.read_quote(db, quote_id)
    catalog = catalog_reader.read_catalog(db)
    return PricingEngine().calculate(quote, catalog, price_book_id=price_book_id,
                                     calculated_at=calculated_at)
