from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from .. import models, schemas
from ..database import get_db
from ..errors import ValidationError
from ..pricing.catalog import rule_from_row
from ..pricing.snapshot import build_scope

router = APIRouter(tags=["pricing-rules"])

# Default rule set. adjustment_value is stored negative for discounts; the
# engine uses its magnitude.
DEFAULT_RULES = [
    {
        "name": "Tier 1 - 15% Discount",
        "description": "Premium partners receive 15% off all pricing",
        "priority": 100, "tier": "Tier 1",
        "adjustment_type": "percentage", "adjustment_value": -15.00, "applies_to": "all",
    },
    {
        "name": "Tier 2 - 10% Off Materials",
        "description": "Regular clients receive 10% off material costs",
        "priority": 50, "tier": "Tier 2",
        "adjustment_type": "percentage", "adjustment_value": -10.00, "applies_to": "materials",
    },
    {
        "name": "Cabinet Maker - Edge Discount",
        "description": "Cabinet makers get reduced edge polish rates",
        "priority": 50, "client_type": "Cabinet Maker",
        "adjustment_type": "percentage", "adjustment_value": 0, "applies_to": "edges",
        "edge_overrides": {"Pencil Round": 30.00},
    },
    {
        "name": "Large Quote Discount",
        "description": "Quotes over $10,000 receive 5% additional discount",
        "priority": 25, "min_quote_value": 10000.00,
        "adjustment_type": "percentage", "adjustment_value": -5.00, "applies_to": "all",
    },
]

DEFAULT_PRICE_BOOKS = {
    "Standard Retail": {
        "description": "Standard pricing for direct consumers and one-off jobs",
        "category": "retail", "is_default": True, "rules": [],
    },
    "Trade Pricing": {
        "description": "Pricing for cabinet makers, builders, and trade accounts",
        "category": "trade", "is_default": False,
        "rules": ["Tier 1 - 15% Discount", "Tier 2 - 10% Off Materials",
                  "Cabinet Maker - Edge Discount", "Large Quote Discount"],
    },
    "Wholesale": {
        "description": "Maximum discounts for high-volume wholesale accounts",
        "category": "wholesale", "is_default": False,
        "rules": ["Tier 1 - 15% Discount", "Large Quote Discount"],
    },
}


def price_book_out(book: models.PriceBook) -> schemas.PriceBook:
    return schemas.PriceBook(
        id=book.id,
        name=book.name,
        description=book.description,
        category=book.category,
        is_default=bool(book.is_default),
        is_active=bool(book.is_active),
        rule_ids=[link.pricing_rule_id for link in book.rules],
    )


def check_rule(rule: models.PricingRule) -> None:
    """Reject rules the engine would refuse to price with."""
    try:
        rule_from_row(rule)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/pricing-rules/seed")
def seed_rules(db: Session = Depends(get_db)):
    """Seed the default rules and price books. Needs /catalog/seed first."""
    added = 0
    for data in DEFAULT_RULES:
        if db.query(models.PricingRule).filter(models.PricingRule.name == data["name"]).first():
            continue
        data = dict(data)
        tier_name = data.pop("tier", None)
        type_name = data.pop("client_type", None)
        edge_overrides = data.pop("edge_overrides", {})
        if tier_name:
            tier = db.query(models.ClientTier).filter(models.ClientTier.name == tier_name).first()
            if not tier:
                raise HTTPException(status_code=404, detail=f"{tier_name} not found. Run /catalog/seed first")
            data["client_tier_id"] = tier.id
        if type_name:
            client_type = db.query(models.ClientType).filter(models.ClientType.name == type_name).first()
            if not client_type:
                raise HTTPException(status_code=404, detail=f"{type_name} not found. Run /catalog/seed first")
            data["client_type_id"] = client_type.id
        rule = models.PricingRule(**data)
        for edge_name, rate in edge_overrides.items():
            edge = db.query(models.EdgeType).filter(models.EdgeType.name == edge_name).first()
            if edge:
                rule.edge_overrides.append(models.PricingRuleEdge(edge_type_id=edge.id, custom_rate=rate))
        db.add(rule)
        added += 1
    db.flush()

    for name, data in DEFAULT_PRICE_BOOKS.items():
        if db.query(models.PriceBook).filter(models.PriceBook.name == name).first():
            continue
        book = models.PriceBook(
            name=name, description=data["description"],
            category=data["category"], is_default=data["is_default"],
        )
        for i, rule_name in enumerate(data["rules"], start=1):
            rule = db.query(models.PricingRule).filter(models.PricingRule.name == rule_name).first()
            if rule:
                book.rules.append(models.PriceBookRule(pricing_rule_id=rule.id, sort_order=i))
        db.add(book)
        added += 1

    db.commit()
    return {"ok": True, "seeded": added}


@router.get("/pricing-rules", response_model=List[schemas.PricingRule])
def list_rules(db: Session = Depends(get_db)):
    return db.query(models.PricingRule).order_by(models.PricingRule.id).all()


@router.post("/pricing-rules", response_model=schemas.PricingRule)
def create_rule(rule_in: schemas.PricingRuleCreate, db: Session = Depends(get_db)):
    try:
        build_scope(rule_in.customer_id, rule_in.client_type_id, rule_in.client_tier_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    data = rule_in.model_dump(exclude={"edge_overrides", "cutout_overrides", "material_overrides"})
    data["adjustment_type"] = rule_in.adjustment_type.value
    data["applies_to"] = rule_in.applies_to.value
    rule = models.PricingRule(**data)
    for o in rule_in.edge_overrides:
        rule.edge_overrides.append(models.PricingRuleEdge(edge_type_id=o.entity_id, custom_rate=o.custom_rate))
    for o in rule_in.cutout_overrides:
        rule.cutout_overrides.append(models.PricingRuleCutout(cutout_type_id=o.entity_id, custom_rate=o.custom_rate))
    for o in rule_in.material_overrides:
        rule.material_overrides.append(models.PricingRuleMaterial(material_id=o.entity_id, custom_rate=o.custom_rate))

    if rule.client_tier_id is not None:
        rule.client_tier = db.query(models.ClientTier).filter(models.ClientTier.id == rule.client_tier_id).first()
        if rule.client_tier is None:
            raise HTTPException(status_code=404, detail="Client tier not found")
    check_rule(rule)

    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


@router.get("/price-books", response_model=List[schemas.PriceBook])
def list_price_books(db: Session = Depends(get_db)):
    books = db.query(models.PriceBook).order_by(models.PriceBook.id).all()
    return [price_book_out(b) for b in books]


@router.post("/price-books", response_model=schemas.PriceBook)
def create_price_book(book_in: schemas.PriceBookCreate, db: Session = Depends(get_db)):
    if db.query(models.PriceBook).filter(models.PriceBook.name == book_in.name).first():
        raise HTTPException(status_code=400, detail=f"Price book '{book_in.name}' already exists")
    book = models.PriceBook(
        name=book_in.name,
        description=book_in.description,
        category=book_in.category,
        is_default=book_in.is_default,
    )
    for i, rule_id in enumerate(book_in.rule_ids, start=1):
        if not db.query(models.PricingRule).filter(models.PricingRule.id == rule_id).first():
            raise HTTPException(status_code=404, detail=f"Pricing rule {rule_id} not found")
        book.rules.append(models.PriceBookRule(pricing_rule_id=rule_id, sort_order=i))
    db.add(book)
    db.commit()
    db.refresh(book)
    return price_book_out(book)


@router.post("/price-books/{book_id}/rules", response_model=schemas.PriceBook)
def add_price_book_rule(book_id: int, link: schemas.PriceBookRuleAdd, db: Session = Depends(get_db)):
    book = db.query(models.PriceBook).filter(models.PriceBook.id == book_id).first()
    if not book:
        raise HTTPException(status_code=404, detail="Price book not found")
    if not db.query(models.PricingRule).filter(models.PricingRule.id == link.pricing_rule_id).first():
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    if any(r.pricing_rule_id == link.pricing_rule_id for r in book.rules):
        raise HTTPException(status_code=400, detail="Rule is already in this price book")

    sort_order = link.sort_order
    if sort_order is None:
        sort_order = max((r.sort_order or 0 for r in book.rules), default=0) + 1
    db.add(models.PriceBookRule(price_book_id=book.id, pricing_rule_id=link.pricing_rule_id, sort_order=sort_order))
    db.commit()
    db.refresh(book)
    return price_book_out(book)
