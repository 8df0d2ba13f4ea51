from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from .. import models, schemas
from ..database import get_db
from ..errors import NotFoundError, PricingError, ValidationError
from ..pricing_engine import calculate_quote_price
from ..versioning import cache_calculation, create_quote_version

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])


def run_calculation(db: Session, quote_id: str, price_book_id: Optional[int] = None) -> schemas.CalculationResult:
    """Price a quote, translating engine errors into HTTP errors."""
    try:
        return calculate_quote_price(db, quote_id, price_book_id=price_book_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PricingError as e:
        logger.error("Pricing failed for quote %s: %s", quote_id, e)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{quote_id}/calculate", response_model=schemas.CalculationResult)
def calculate(quote_id: str, body: Optional[schemas.CalculateRequest] = None, db: Session = Depends(get_db)):
    """
    Price the quote. The result is cached on the quote unless a price book is
    pinned, which is a preview and leaves the quote untouched.
    """
    price_book_id = body.price_book_id if body else None
    result = run_calculation(db, quote_id, price_book_id)
    if price_book_id is None:
        quote = db.query(models.Quote).filter(models.Quote.id == result.quote_id).first()
        cache_calculation(quote, result)
        db.commit()
    return result


@router.get("/{quote_id}/breakdown")
def get_breakdown(quote_id: int, db: Session = Depends(get_db)):
    quote = db.query(models.Quote).filter(models.Quote.id == quote_id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    if not quote.calculation_breakdown:
        raise HTTPException(status_code=404, detail="Quote has not been calculated yet")
    return quote.calculation_breakdown


@router.post("/{quote_id}/versions")
def create_version(quote_id: str, body: Optional[schemas.QuoteVersionCreate] = None,
                   db: Session = Depends(get_db)):
    """Recalculate, cache and snapshot the quote in one transaction."""
    body = body or schemas.QuoteVersionCreate()
    result = run_calculation(db, quote_id)
    quote = db.query(models.Quote).filter(models.Quote.id == result.quote_id).first()
    try:
        cache_calculation(quote, result)
        version = create_quote_version(
            db, quote, result,
            change_type=body.change_type,
            change_summary=body.change_summary,
            changed_by=body.changed_by,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {
        "ok": True,
        "version_number": version.version_number,
        "subtotal": result.subtotal,
        "total": result.total,
    }


@router.get("/{quote_id}/versions", response_model=list[schemas.QuoteVersion])
def list_versions(quote_id: int, db: Session = Depends(get_db)):
    quote = db.query(models.Quote).filter(models.Quote.id == quote_id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote.versions
