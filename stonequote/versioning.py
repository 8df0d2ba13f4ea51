"""
Persisting a CalculationResult: the quote's cached breakdown and the
versioned audit snapshots.

Nothing here commits. The router wraps caching + versioning in one
transaction.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models, schemas
from .money import to_decimal

logger = logging.getLogger(__name__)


def cache_calculation(quote: models.Quote, result: schemas.CalculationResult) -> None:
    """Store the result on the quote row. The cache is never read back by the engine."""
    quote.calculation_breakdown = result.model_dump(mode="json")
    quote.calculated_total = result.total
    quote.calculated_at = result.calculated_at


def build_version_snapshot(quote: models.Quote, result: Optional[schemas.CalculationResult]) -> dict:
    """Full picture of the quote at this moment, with the pricing breakdown embedded verbatim."""
    customer = quote.customer
    return {
        "quote_number": quote.quote_number,
        "status": quote.status.value if quote.status else None,
        "project_name": quote.project_name,
        "notes": quote.notes,
        "customer": {
            "id": customer.id,
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
            "client_type": customer.client_type.name if customer.client_type else None,
            "client_tier": customer.client_tier.name if customer.client_tier else None,
        } if customer else None,
        "price_book_id": quote.price_book_id,
        "rooms": [
            {
                "id": room.id,
                "name": room.name,
                "sort_order": room.sort_order,
                "pieces": [
                    {
                        "id": piece.id,
                        "name": piece.name,
                        "length_mm": piece.length_mm,
                        "width_mm": piece.width_mm,
                        "thickness_mm": piece.thickness_mm,
                        "material_id": piece.material_id,
                        "material_name": piece.material.name if piece.material else None,
                        "edge_top": piece.edge_top,
                        "edge_bottom": piece.edge_bottom,
                        "edge_left": piece.edge_left,
                        "edge_right": piece.edge_right,
                        "cutouts": piece.cutouts or [],
                        "override_material_cost": _num(piece.override_material_cost),
                    }
                    for piece in room.pieces
                ],
            }
            for room in quote.rooms
        ],
        "delivery": {
            "address": quote.delivery_address,
            "distance_km": _num(quote.delivery_distance_km),
            "templating_required": bool(quote.templating_required),
            "templating_distance_km": _num(quote.templating_distance_km),
        },
        "overrides": {
            "subtotal": _num(quote.override_subtotal),
            "total": _num(quote.override_total),
            "delivery_cost": _num(quote.override_delivery_cost),
            "templating_cost": _num(quote.override_templating_cost),
            "reason": quote.override_reason,
        },
        "pricing": result.model_dump(mode="json") if result else quote.calculation_breakdown,
    }


def next_version_number(db: Session, quote_id: int) -> int:
    current = (
        db.query(func.max(models.QuoteVersion.version_number))
        .filter(models.QuoteVersion.quote_id == quote_id)
        .scalar()
    )
    return (current or 0) + 1


def create_quote_version(db: Session, quote: models.Quote,
                         result: Optional[schemas.CalculationResult] = None,
                         change_type: str = "RECALCULATED",
                         change_summary: Optional[str] = None,
                         changed_by: Optional[str] = None) -> models.QuoteVersion:
    version = models.QuoteVersion(
        quote_id=quote.id,
        version_number=next_version_number(db, quote.id),
        change_type=change_type,
        change_summary=change_summary,
        changed_by=changed_by,
        snapshot_json=build_version_snapshot(quote, result),
        subtotal=result.subtotal if result else quote.calculated_total,
        total=result.total if result else quote.calculated_total,
    )
    db.add(version)
    db.flush()
    logger.info("Quote %s: version %d (%s)", quote.quote_number, version.version_number, change_type)
    return version


def _num(value):
    value = to_decimal(value)
    return None if value is None else float(value)
