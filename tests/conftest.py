"""
Shared test fixtures: SQLite test database, test client, quote builders.
"""

import os
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set DATABASE_URL before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from stonequote import models
from stonequote.database import Base, get_db
from stonequote.main import app


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db):
    """
    Minimal price list: one engineered stone at $140/m², Pencil Round edge at
    $35/lm, Undermount Sink at $220. No service rates, so totals are pieces only.
    """
    material = models.Material(name="Calacatta Nuvo", price_per_sqm=Decimal("140.00"))
    pencil = models.EdgeType(name="Pencil Round", category="polish", base_rate=Decimal("35.00"), sort_order=1)
    sink = models.CutoutType(name="Undermount Sink", category="sink", base_rate=Decimal("220.00"), sort_order=1)
    tier = models.ClientTier(name="Tier 1", priority=100)
    db.add_all([material, pencil, sink, tier])
    db.commit()
    return {"material": material, "pencil": pencil, "sink": sink, "tier": tier}


@pytest.fixture
def make_quote(db):
    """
    Factory: make_quote(pieces=[{...}], customer=None, **quote_fields) -> Quote.
    Piece dicts are QuotePiece columns; all go in one 'Kitchen' room.
    """
    counter = {"n": 0}

    def _make(pieces, customer=None, **quote_fields):
        counter["n"] += 1
        quote = models.Quote(
            quote_number=f"Q-TEST-{counter['n']:04d}",
            customer=customer,
            **quote_fields,
        )
        room = models.QuoteRoom(name="Kitchen", sort_order=0)
        for i, piece in enumerate(pieces):
            data = {"name": f"Benchtop {i + 1}", "thickness_mm": 20, "sort_order": i}
            data.update(piece)
            room.pieces.append(models.QuotePiece(**data))
        quote.rooms.append(room)
        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    return _make


@pytest.fixture
def scenario_a_quote(catalog, make_quote):
    """Two 3600x650 benchtops, Pencil Round on one long side each, one undermount sink."""
    material = catalog["material"]
    pencil = catalog["pencil"]
    sink = catalog["sink"]
    return make_quote([
        {"length_mm": 3600, "width_mm": 650, "material_id": material.id,
         "edge_left": pencil.id, "cutouts": [{"cutout_type_id": sink.id, "quantity": 1}]},
        {"length_mm": 3600, "width_mm": 650, "material_id": material.id,
         "edge_left": pencil.id, "cutouts": []},
    ])
