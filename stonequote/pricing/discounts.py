"""
Override & Discount Applicator.

Pass A collects rate overrides from the ordered rule list (first rule to
name an entity wins). The engine then re-runs the calculators with those
rates. Pass B walks the same list applying percentage / fixed discounts,
each of materials, edges and cutouts being discounted by at most one rule.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from ..calculators.registry import DISCOUNTABLE_CATEGORIES
from ..models import AdjustmentType, AppliesTo
from ..money import HUNDRED, ZERO, floor_zero, fmt_money, money
from .snapshot import RateOverrides

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideResolution:
    overrides: RateOverrides
    # rule id -> override kinds it won, e.g. ("edge",)
    winners: Mapping[int, tuple] = field(default_factory=dict)


@dataclass(frozen=True)
class DiscountOutcome:
    subtotals: Mapping[str, Decimal]
    discounts: Mapping[str, Decimal]
    totals: Mapping[str, Decimal]
    applied_rules: tuple = ()
    discount_records: tuple = ()

    @property
    def total_discount(self) -> Decimal:
        return sum(self.discounts.values(), ZERO)


def collect_rate_overrides(resolved_rules) -> OverrideResolution:
    """Pass A."""
    edges, cutouts, materials = {}, {}, {}
    winners = {}

    for resolved in resolved_rules:
        rule = resolved.rule
        won = []
        for kind, pairs, target in (
            ("material", rule.material_overrides, materials),
            ("edge", rule.edge_overrides, edges),
            ("cutout", rule.cutout_overrides, cutouts),
        ):
            for entity_id, rate in pairs:
                if entity_id in target:
                    continue
                target[entity_id] = rate
                if kind not in won:
                    won.append(kind)
        if won:
            winners[rule.id] = tuple(won)

    return OverrideResolution(
        overrides=RateOverrides(edges=edges, cutouts=cutouts, materials=materials),
        winners=winners,
    )


def apply_discounts(resolved_rules, subtotals: Mapping[str, Decimal],
                    winners: Mapping[int, tuple] = None) -> DiscountOutcome:
    """
    Pass B. `subtotals` are the post-override category subtotals; only the
    discountable categories are read. Returns per-category discount and
    final totals (never below zero) plus the applied-rule log.
    """
    winners = winners or {}
    subtotals = {c: subtotals.get(c, ZERO) for c in DISCOUNTABLE_CATEGORIES}
    discounts = {c: ZERO for c in DISCOUNTABLE_CATEGORIES}
    adjusted = set()

    applied_rules = []
    discount_records = []

    for resolved in resolved_rules:
        rule = resolved.rule
        effects = []

        value = abs(rule.adjustment_value)
        if value > ZERO:
            if rule.applies_to == AppliesTo.ALL.value:
                targets = [c for c in DISCOUNTABLE_CATEGORIES if c not in adjusted]
            elif rule.applies_to in adjusted:
                targets = []
            else:
                targets = [rule.applies_to]

            if targets:
                savings = _savings(rule.adjustment_type, value, targets, subtotals)
                adjusted.update(targets)
                total_saved = ZERO
                for category, amount in savings.items():
                    # Never take a category below zero
                    remaining = floor_zero(subtotals[category] - discounts[category])
                    amount = max(ZERO, min(amount, remaining))
                    discounts[category] += amount
                    total_saved += amount

                if total_saved > ZERO:
                    effects.append(_discount_effect(rule.adjustment_type, value, rule.applies_to))
                    discount_records.append({
                        "rule_id": rule.id,
                        "rule_name": rule.name,
                        "type": "percentage" if rule.adjustment_type == AdjustmentType.PERCENTAGE.value
                        else "fixed",
                        "value": value,
                        "applied_to": rule.applies_to,
                        "savings": money(total_saved),
                    })
            else:
                logger.debug("Rule %s skipped: %s already discounted", rule.id, rule.applies_to)

        for kind in winners.get(rule.id, ()):
            effects.append(f"{kind} rate overrides")

        if effects:
            applied_rules.append({
                "rule_id": rule.id,
                "rule_name": rule.name,
                "priority": resolved.effective_priority,
                "effect": ", ".join(effects),
            })

    discounts = {c: money(discounts[c]) for c in DISCOUNTABLE_CATEGORIES}
    totals = {c: money(floor_zero(subtotals[c] - discounts[c])) for c in DISCOUNTABLE_CATEGORIES}
    return DiscountOutcome(
        subtotals=subtotals,
        discounts=discounts,
        totals=totals,
        applied_rules=tuple(applied_rules),
        discount_records=tuple(discount_records),
    )


def _savings(adjustment_type: str, value: Decimal, targets: list, subtotals) -> dict:
    if adjustment_type == AdjustmentType.PERCENTAGE.value:
        return {c: money(subtotals[c] * value / HUNDRED) for c in targets}

    if len(targets) == 1:
        return {targets[0]: money(value)}

    # Fixed amount across several categories: split by share of their combined total
    combined = sum((subtotals[c] for c in targets), ZERO)
    if combined <= ZERO:
        return {}
    shares = {}
    allocated = ZERO
    live = [c for c in targets if subtotals[c] > ZERO]
    for category in live[:-1]:
        shares[category] = money(value * subtotals[category] / combined)
        allocated += shares[category]
    # Last category absorbs the rounding remainder
    shares[live[-1]] = money(value) - allocated
    return shares


def _discount_effect(adjustment_type: str, value: Decimal, applies_to: str) -> str:
    if adjustment_type == AdjustmentType.PERCENTAGE.value:
        return f"{value.normalize():f}% off {applies_to}"
    return f"{fmt_money(value)} off {applies_to}"
