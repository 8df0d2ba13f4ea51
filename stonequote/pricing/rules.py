"""
Rule Resolver.

Selects the pricing rules that apply to one quote and orders them:

1. candidates = default rules + rules scoped to the customer, its client
   type or its client tier + the rules of the active price book. Price-book
   rules replace a directly matched rule with the same id and keep the
   book's own order.
2. drop rules whose min/max quote-value threshold excludes the pass-1
   subtotal (both bounds inclusive)
3. effective priority = max(explicit priority, floor for the scope class)
4. stable sort, highest effective priority first
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..errors import ValidationError
from .snapshot import (
    ClientTierScope,
    ClientTypeScope,
    CustomerContext,
    CustomerScope,
    DefaultScope,
    PriceBookSpec,
    PricingRuleSpec,
    RuleScope,
)

logger = logging.getLogger(__name__)

# Priority floors per scope class
PRIORITY_CUSTOMER_SPECIFIC = 100
PRIORITY_CLIENT_TYPE = 50
PRIORITY_VOLUME_BASED = 25
PRIORITY_DEFAULT = 0

SOURCE_DIRECT = "direct"
SOURCE_PRICE_BOOK = "price_book"


@dataclass(frozen=True)
class ResolvedRule:
    rule: PricingRuleSpec
    effective_priority: int
    source: str = SOURCE_DIRECT


def scope_matches(scope: RuleScope, customer: Optional[CustomerContext]) -> bool:
    if isinstance(scope, DefaultScope):
        return True
    if customer is None:
        return False
    if isinstance(scope, CustomerScope):
        return scope.customer_id == customer.customer_id
    if isinstance(scope, ClientTypeScope):
        return scope.client_type_id == customer.client_type_id
    if isinstance(scope, ClientTierScope):
        return scope.client_tier_id == customer.client_tier_id
    raise ValidationError(f"Unknown rule scope: {scope!r}")


def scope_floor(rule: PricingRuleSpec) -> int:
    scope = rule.scope
    if isinstance(scope, CustomerScope):
        return PRIORITY_CUSTOMER_SPECIFIC
    if isinstance(scope, ClientTierScope):
        return scope.tier_priority
    if isinstance(scope, ClientTypeScope):
        return PRIORITY_CLIENT_TYPE
    if isinstance(scope, DefaultScope):
        return PRIORITY_VOLUME_BASED if rule.has_threshold else PRIORITY_DEFAULT
    raise ValidationError(f"Unknown rule scope: {scope!r}")


def effective_priority(rule: PricingRuleSpec) -> int:
    """The rule's own priority, raised to the floor for its scope class."""
    return max(rule.priority or 0, scope_floor(rule))


def within_thresholds(rule: PricingRuleSpec, subtotal: Decimal) -> bool:
    if rule.min_quote_value is not None and subtotal < rule.min_quote_value:
        return False
    if rule.max_quote_value is not None and subtotal > rule.max_quote_value:
        return False
    return True


def resolve_rules(rules, customer: Optional[CustomerContext],
                  price_book: Optional[PriceBookSpec], subtotal: Decimal) -> tuple:
    """
    Returns the applicable rules as a tuple of ResolvedRule, highest
    effective priority first. `rules` must be the active rule set.
    """
    by_id = {rule.id: rule for rule in rules}

    candidates = {}
    for rule in rules:
        if scope_matches(rule.scope, customer):
            candidates[rule.id] = (rule, SOURCE_DIRECT)

    if price_book is not None:
        for rule_id in price_book.rule_ids:
            rule = by_id.get(rule_id)
            if rule is None:
                # Inactive or deleted rule still linked from the book
                logger.debug("Price book %s links inactive rule %s", price_book.id, rule_id)
                continue
            candidates.pop(rule_id, None)
            candidates[rule_id] = (rule, SOURCE_PRICE_BOOK)

    resolved = [
        ResolvedRule(rule=rule, effective_priority=effective_priority(rule), source=source)
        for rule, source in candidates.values()
        if within_thresholds(rule, subtotal)
    ]
    # sorted() is stable; ties keep candidate order
    resolved = sorted(resolved, key=lambda r: -r.effective_priority)

    logger.debug(
        "Resolved %d pricing rule(s) for subtotal %s: %s",
        len(resolved), subtotal, [r.rule.id for r in resolved],
    )
    return tuple(resolved)
