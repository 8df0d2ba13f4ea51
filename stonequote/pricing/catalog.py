"""
Catalog Reader: loads a quote and the pricing catalog into immutable snapshots.

All reads happen here, before any pricing math, so the rest of the engine is
pure and both calculator passes see the same rates.
"""

import json
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from .. import models
from ..config import settings
from ..errors import NotFoundError, ValidationError
from ..money import to_decimal
from .snapshot import (
    CatalogSnapshot,
    CustomerContext,
    CutoutLine,
    CutoutTypeRate,
    EdgeTypeRate,
    MaterialRate,
    OrganisationPricing,
    PieceSpec,
    PriceBookSpec,
    PricingRuleSpec,
    QuoteSnapshot,
    ServiceRateSpec,
    build_scope,
)

logger = logging.getLogger(__name__)

ADJUSTMENT_TYPES = {t.value for t in models.AdjustmentType}
APPLIES_TO = {a.value for a in models.AppliesTo}
PRICING_BASES = {b.value for b in models.MaterialPricingBasis}
RATE_UNITS = {u.value for u in models.RateUnit}
SERVICE_ORDER = [s.value for s in models.ServiceType]


def read_quote(db: Session, quote_id: int) -> QuoteSnapshot:
    """Load a quote with its rooms, pieces, customer and latest slab count."""
    quote = db.query(models.Quote).filter(models.Quote.id == quote_id).first()
    if not quote:
        raise NotFoundError(f"Quote {quote_id} not found")

    pieces = []
    for room in quote.rooms:
        for piece in room.pieces:
            pieces.append(piece_from_row(piece, room_name=room.name))

    customer = None
    if quote.customer:
        customer = CustomerContext(
            customer_id=quote.customer.id,
            client_type_id=quote.customer.client_type_id,
            client_tier_id=quote.customer.client_tier_id,
            price_book_id=quote.customer.price_book_id,
        )

    return QuoteSnapshot(
        quote_id=quote.id,
        quote_number=quote.quote_number,
        pieces=tuple(pieces),
        customer=customer,
        price_book_id=quote.price_book_id,
        slab_count=latest_slab_count(db, quote.id),
        delivery_address=quote.delivery_address,
        delivery_distance_km=to_decimal(quote.delivery_distance_km),
        delivery_zone=quote.delivery_zone.name if quote.delivery_zone else None,
        delivery_cost=to_decimal(quote.delivery_cost),
        templating_required=bool(quote.templating_required),
        templating_distance_km=to_decimal(quote.templating_distance_km),
        templating_cost=to_decimal(quote.templating_cost),
        override_subtotal=to_decimal(quote.override_subtotal),
        override_total=to_decimal(quote.override_total),
        override_delivery_cost=to_decimal(quote.override_delivery_cost),
        override_templating_cost=to_decimal(quote.override_templating_cost),
        override_reason=quote.override_reason,
    )


def piece_from_row(piece: models.QuotePiece, room_name: str = "") -> PieceSpec:
    return PieceSpec(
        id=piece.id,
        name=piece.name or f"Piece {piece.id}",
        room_name=room_name or "",
        length_mm=piece.length_mm,
        width_mm=piece.width_mm,
        thickness_mm=piece.thickness_mm,
        material_id=piece.material_id,
        edge_top=piece.edge_top,
        edge_bottom=piece.edge_bottom,
        edge_left=piece.edge_left,
        edge_right=piece.edge_right,
        cutouts=parse_cutouts(piece.cutouts, piece_id=piece.id),
        override_material_cost=to_decimal(piece.override_material_cost),
    )


def parse_cutouts(raw, piece_id=None) -> tuple:
    """
    Piece cutouts are stored as JSON: [{"cutout_type_id": 3, "quantity": 2}, ...].
    Older rows may hold the list as a JSON string. Missing quantity means 1.
    """
    if not raw:
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Piece {piece_id} has unreadable cutouts: {e}")
    if not isinstance(raw, list):
        raise ValidationError(f"Piece {piece_id} cutouts must be a list")

    lines = []
    for entry in raw:
        if not isinstance(entry, dict) or entry.get("cutout_type_id") is None:
            raise ValidationError(f"Piece {piece_id} has a cutout without cutout_type_id")
        qty = entry.get("quantity")
        try:
            qty = 1 if qty is None else int(qty)
            cutout_type_id = int(entry["cutout_type_id"])
        except (TypeError, ValueError):
            raise ValidationError(f"Piece {piece_id} has a malformed cutout: {entry!r}")
        if qty < 0:
            raise ValidationError(f"Piece {piece_id} has a negative cutout quantity")
        lines.append(CutoutLine(cutout_type_id=cutout_type_id, quantity=qty))
    return tuple(lines)


def latest_slab_count(db: Session, quote_id: int):
    """total_slabs of the most recent optimizer run, or None if never run."""
    run = (
        db.query(models.SlabOptimization)
        .filter(models.SlabOptimization.quote_id == quote_id)
        .order_by(models.SlabOptimization.created_at.desc(), models.SlabOptimization.id.desc())
        .first()
    )
    return run.total_slabs if run else None


def read_catalog(db: Session) -> CatalogSnapshot:
    """Load every active rate, rule and price book into one snapshot."""
    materials = {
        m.id: MaterialRate(
            id=m.id,
            name=m.name,
            price_per_sqm=to_decimal(m.price_per_sqm, Decimal("0")),
            price_per_slab=to_decimal(m.price_per_slab),
        )
        for m in db.query(models.Material).filter(models.Material.is_active == True).all()  # noqa: E712
    }

    edge_types = {
        e.id: EdgeTypeRate(
            id=e.id,
            name=e.name,
            category=e.category or "polish",
            base_rate=to_decimal(e.base_rate, Decimal("0")),
            rate_20mm=to_decimal(e.rate_20mm),
            rate_40mm=to_decimal(e.rate_40mm),
            minimum_charge=to_decimal(e.minimum_charge),
            minimum_length=to_decimal(e.minimum_length),
        )
        for e in db.query(models.EdgeType)
        .filter(models.EdgeType.is_active == True)  # noqa: E712
        .order_by(models.EdgeType.sort_order, models.EdgeType.id)
        .all()
    }

    cutout_types = {
        c.id: CutoutTypeRate(
            id=c.id,
            name=c.name,
            category=c.category or "standard",
            base_rate=to_decimal(c.base_rate, Decimal("0")),
            minimum_charge=to_decimal(c.minimum_charge),
        )
        for c in db.query(models.CutoutType)
        .filter(models.CutoutType.is_active == True)  # noqa: E712
        .order_by(models.CutoutType.sort_order, models.CutoutType.id)
        .all()
    }

    service_rows = db.query(models.ServiceRate).filter(models.ServiceRate.is_active == True).all()  # noqa: E712
    service_rows.sort(key=lambda r: (
        SERVICE_ORDER.index(r.service_type) if r.service_type in SERVICE_ORDER else len(SERVICE_ORDER),
        r.service_type,
    ))
    service_rates = tuple(service_rate_from_row(r) for r in service_rows)

    rule_rows = (
        db.query(models.PricingRule)
        .filter(models.PricingRule.is_active == True)  # noqa: E712
        .order_by(models.PricingRule.id)
        .all()
    )
    rules = tuple(rule_from_row(r) for r in rule_rows)

    price_books = {}
    for book in db.query(models.PriceBook).filter(models.PriceBook.is_active == True).all():  # noqa: E712
        price_books[book.id] = PriceBookSpec(
            id=book.id,
            name=book.name,
            rule_ids=tuple(link.pricing_rule_id for link in book.rules),
        )

    return CatalogSnapshot(
        materials=materials,
        edge_types=edge_types,
        cutout_types=cutout_types,
        service_rates=service_rates,
        rules=rules,
        price_books=price_books,
        pricing=read_pricing_settings(db),
    )


def service_rate_from_row(row: models.ServiceRate) -> ServiceRateSpec:
    unit = row.unit or models.RateUnit.LINEAR_METRE.value
    if unit not in RATE_UNITS:
        raise ValidationError(f"Service rate {row.service_type} has unknown unit '{unit}'")
    return ServiceRateSpec(
        service_type=row.service_type,
        name=row.name,
        rate_20mm=to_decimal(row.rate_20mm, Decimal("0")),
        rate_40mm=to_decimal(row.rate_40mm, Decimal("0")),
        unit=unit,
        minimum_charge=to_decimal(row.minimum_charge),
        minimum_qty=to_decimal(row.minimum_qty),
    )


def rule_from_row(rule: models.PricingRule) -> PricingRuleSpec:
    """Validate a stored rule and convert it to its immutable form."""
    adjustment_type = rule.adjustment_type or models.AdjustmentType.PERCENTAGE.value
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError(f"Pricing rule '{rule.name}' has unknown adjustment type '{adjustment_type}'")
    applies_to = rule.applies_to or models.AppliesTo.ALL.value
    if applies_to not in APPLIES_TO:
        raise ValidationError(f"Pricing rule '{rule.name}' has unknown applies_to '{applies_to}'")

    tier_priority = rule.client_tier.priority if rule.client_tier else 0
    scope = build_scope(
        customer_id=rule.customer_id,
        client_type_id=rule.client_type_id,
        client_tier_id=rule.client_tier_id,
        tier_priority=tier_priority,
    )

    return PricingRuleSpec(
        id=rule.id,
        name=rule.name,
        scope=scope,
        adjustment_type=adjustment_type,
        adjustment_value=to_decimal(rule.adjustment_value, Decimal("0")),
        applies_to=applies_to,
        priority=rule.priority,
        min_quote_value=to_decimal(rule.min_quote_value),
        max_quote_value=to_decimal(rule.max_quote_value),
        edge_overrides=_override_pairs(rule, rule.edge_overrides, "edge_type_id"),
        cutout_overrides=_override_pairs(rule, rule.cutout_overrides, "cutout_type_id"),
        material_overrides=_override_pairs(rule, rule.material_overrides, "material_id"),
    )


def _override_pairs(rule, rows, id_attr: str) -> tuple:
    # Rows without a custom rate don't override anything
    pairs = []
    for row in sorted(rows, key=lambda r: r.id or 0):
        if row.custom_rate is None:
            continue
        rate = to_decimal(row.custom_rate)
        if rate < 0:
            raise ValidationError(f"Pricing rule '{rule.name}' has a negative custom rate")
        pairs.append((getattr(row, id_attr), rate))
    return tuple(pairs)


def read_pricing_settings(db: Session) -> OrganisationPricing:
    """Organisation pricing settings row overlaid on the app config defaults."""
    row = (
        db.query(models.PricingSettings)
        .filter(models.PricingSettings.organisation_id == "default")
        .first()
    )

    basis = (row.material_pricing_basis if row else None) or settings.MATERIAL_PRICING_BASIS
    if basis not in PRICING_BASES:
        raise ValidationError(f"Unknown material pricing basis '{basis}'")

    service_units = {}
    for service_type, column, fallback in (
        (models.ServiceType.CUTTING.value, "cutting_unit", settings.CUTTING_UNIT),
        (models.ServiceType.POLISHING.value, "polishing_unit", settings.POLISHING_UNIT),
        (models.ServiceType.INSTALLATION.value, "installation_unit", settings.INSTALLATION_UNIT),
    ):
        unit = (getattr(row, column) if row else None) or fallback
        if unit:
            if unit not in RATE_UNITS:
                raise ValidationError(f"Unknown {service_type.lower()} unit '{unit}'")
            service_units[service_type] = unit

    tax_rate = to_decimal(row.tax_rate) if row and row.tax_rate is not None else to_decimal(settings.TAX_RATE)

    return OrganisationPricing(
        material_pricing_basis=basis,
        currency=(row.currency if row else None) or settings.CURRENCY,
        tax_rate=tax_rate,
        service_units=service_units,
    )
