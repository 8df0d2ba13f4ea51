from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from .. import models, schemas
from ..database import get_db

router = APIRouter(prefix="/catalog", tags=["catalog"])

# Northcoast Stone price list. Edge rates are per linear metre, cutouts per cutout.
DEFAULT_EDGE_TYPES = {
    "Pencil Round": {"category": "polish", "base_rate": 35.00, "sort_order": 1},
    "Bullnose": {"category": "polish", "base_rate": 45.00, "sort_order": 2},
    "Arriss": {"category": "polish", "base_rate": 25.00, "sort_order": 3},
    "Waterfall": {"category": "waterfall", "base_rate": 85.00, "sort_order": 4},
    "Apron": {"category": "apron", "base_rate": 95.00, "sort_order": 5},
}

DEFAULT_CUTOUT_TYPES = {
    "Undermount Sink": {"category": "sink", "base_rate": 220.00, "sort_order": 1},
    "Drop-in Sink": {"category": "sink", "base_rate": 180.00, "sort_order": 2},
    "Hotplate": {"category": "cooktop", "base_rate": 180.00, "sort_order": 3},
    "Tap Hole": {"category": "tap", "base_rate": 45.00, "sort_order": 4},
    "Powerpoint Cutout": {"category": "electrical", "base_rate": 65.00, "sort_order": 5},
    "Cooktop Cutout": {"category": "cooktop", "base_rate": 180.00, "sort_order": 6},
}

DEFAULT_SERVICE_RATES = {
    models.ServiceType.CUTTING.value: {
        "name": "Cutting",
        "description": "Cutting stone to shape, charged on the full perimeter",
        "rate_20mm": 17.50, "rate_40mm": 45.00, "unit": models.RateUnit.LINEAR_METRE.value,
    },
    models.ServiceType.POLISHING.value: {
        "name": "Polishing (Base)",
        "description": "Base polishing rate, charged on finished edges only",
        "rate_20mm": 45.00, "rate_40mm": 115.00, "unit": models.RateUnit.LINEAR_METRE.value,
    },
    models.ServiceType.INSTALLATION.value: {
        "name": "Installation",
        "description": "On-site installation, charged on piece area",
        "rate_20mm": 140.00, "rate_40mm": 170.00, "unit": models.RateUnit.SQUARE_METRE.value,
    },
    models.ServiceType.WATERFALL_END.value: {
        "name": "Waterfall End",
        "description": "Waterfall edge treatment, fixed per waterfall end",
        "rate_20mm": 300.00, "rate_40mm": 650.00, "unit": models.RateUnit.FIXED.value,
    },
}

DEFAULT_CLIENT_TYPES = {
    "Cabinet Maker": "Kitchen and joinery manufacturers",
    "Builder": "Residential and commercial builders",
    "Direct Consumer": "Homeowners and end consumers",
    "Designer/Architect": "Interior designers and architects",
}

DEFAULT_CLIENT_TIERS = {
    "Tier 1": {"description": "Premium partners - best pricing", "priority": 100},
    "Tier 2": {"description": "Regular clients - standard discounts", "priority": 50},
    "Tier 3": {"description": "New clients - standard pricing", "priority": 0, "is_default": True},
}


def seed_catalog(db: Session) -> int:
    """Insert any missing default catalog rows. Existing rows are left alone."""
    added = 0
    for name, data in DEFAULT_EDGE_TYPES.items():
        if not db.query(models.EdgeType).filter(models.EdgeType.name == name).first():
            db.add(models.EdgeType(name=name, **data))
            added += 1
    for name, data in DEFAULT_CUTOUT_TYPES.items():
        if not db.query(models.CutoutType).filter(models.CutoutType.name == name).first():
            db.add(models.CutoutType(name=name, **data))
            added += 1
    for service_type, data in DEFAULT_SERVICE_RATES.items():
        if not db.query(models.ServiceRate).filter(models.ServiceRate.service_type == service_type).first():
            db.add(models.ServiceRate(service_type=service_type, **data))
            added += 1
    for name, description in DEFAULT_CLIENT_TYPES.items():
        if not db.query(models.ClientType).filter(models.ClientType.name == name).first():
            db.add(models.ClientType(name=name, description=description))
            added += 1
    for name, data in DEFAULT_CLIENT_TIERS.items():
        if not db.query(models.ClientTier).filter(models.ClientTier.name == name).first():
            db.add(models.ClientTier(name=name, **data))
            added += 1
    db.commit()
    return added


@router.get("/seed")
def seed(db: Session = Depends(get_db)):
    """Seed default edge types, cutout types, service rates and client classes."""
    added = seed_catalog(db)
    return {"ok": True, "seeded": added}


@router.get("/edge-types", response_model=List[schemas.EdgeType])
def list_edge_types(db: Session = Depends(get_db)):
    return (
        db.query(models.EdgeType)
        .filter(models.EdgeType.is_active == True)  # noqa: E712
        .order_by(models.EdgeType.sort_order, models.EdgeType.id)
        .all()
    )


@router.get("/cutout-types", response_model=List[schemas.CutoutType])
def list_cutout_types(db: Session = Depends(get_db)):
    return (
        db.query(models.CutoutType)
        .filter(models.CutoutType.is_active == True)  # noqa: E712
        .order_by(models.CutoutType.sort_order, models.CutoutType.id)
        .all()
    )


@router.get("/service-rates", response_model=List[schemas.ServiceRate])
def list_service_rates(db: Session = Depends(get_db)):
    return db.query(models.ServiceRate).filter(models.ServiceRate.is_active == True).all()  # noqa: E712
