"""
HTTP API tests: calculate / breakdown / versions, catalog seed and listing,
pricing rule and price book administration.
"""

from decimal import Decimal

from stonequote import models
from stonequote.routers.catalog import DEFAULT_CUTOUT_TYPES, DEFAULT_EDGE_TYPES, DEFAULT_SERVICE_RATES


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# --- Quotes ---

def test_calculate_returns_and_caches_result(client, db, scenario_a_quote):
    response = client.post(f"/api/quotes/{scenario_a_quote.id}/calculate")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == "1127.20"
    assert data["breakdown"]["edges"]["total"] == "252.00"
    assert data["currency"] == "AUD"

    breakdown = client.get(f"/api/quotes/{scenario_a_quote.id}/breakdown")
    assert breakdown.status_code == 200
    assert breakdown.json()["total"] == "1127.20"

    db.expire_all()
    quote = db.query(models.Quote).filter(models.Quote.id == scenario_a_quote.id).first()
    assert quote.calculated_total == Decimal("1127.20")
    assert quote.calculated_at is not None


def test_preview_with_pinned_price_book_is_not_cached(client, db, scenario_a_quote):
    book = models.PriceBook(name="Standard Retail")
    db.add(book)
    db.commit()

    response = client.post(f"/api/quotes/{scenario_a_quote.id}/calculate", json={"price_book_id": book.id})
    assert response.status_code == 200
    assert response.json()["price_book"]["name"] == "Standard Retail"

    assert client.get(f"/api/quotes/{scenario_a_quote.id}/breakdown").status_code == 404


def test_calculate_errors(client, scenario_a_quote):
    assert client.post("/api/quotes/not-a-number/calculate").status_code == 400
    assert client.post("/api/quotes/9999/calculate").status_code == 404
    missing_book = client.post(f"/api/quotes/{scenario_a_quote.id}/calculate", json={"price_book_id": 9999})
    assert missing_book.status_code == 404


def test_create_versions_numbers_sequentially(client, db, scenario_a_quote):
    first = client.post(f"/api/quotes/{scenario_a_quote.id}/versions",
                        json={"change_summary": "Initial pricing", "changed_by": "estimator@northcoast"})
    second = client.post(f"/api/quotes/{scenario_a_quote.id}/versions")
    assert first.status_code == 200
    assert first.json()["version_number"] == 1
    assert second.json()["version_number"] == 2

    versions = client.get(f"/api/quotes/{scenario_a_quote.id}/versions").json()
    assert [v["version_number"] for v in versions] == [1, 2]
    assert versions[0]["change_summary"] == "Initial pricing"

    version = db.query(models.QuoteVersion).filter(models.QuoteVersion.version_number == 1).first()
    snapshot = version.snapshot_json
    assert snapshot["quote_number"] == scenario_a_quote.quote_number
    assert snapshot["pricing"]["total"] == "1127.20"
    assert len(snapshot["rooms"][0]["pieces"]) == 2


# --- Catalog ---

def test_catalog_seed_and_list(client):
    response = client.get("/api/catalog/seed")
    assert response.status_code == 200
    assert response.json()["seeded"] > 0

    edges = client.get("/api/catalog/edge-types").json()
    assert [e["name"] for e in edges] == list(DEFAULT_EDGE_TYPES.keys())
    cutouts = client.get("/api/catalog/cutout-types").json()
    assert len(cutouts) == len(DEFAULT_CUTOUT_TYPES)
    rates = client.get("/api/catalog/service-rates").json()
    assert {r["service_type"] for r in rates} == set(DEFAULT_SERVICE_RATES.keys())

    # Second seed adds nothing
    assert client.get("/api/catalog/seed").json()["seeded"] == 0


# --- Pricing rules / price books ---

def test_create_rule_with_override(client, catalog):
    response = client.post("/api/pricing-rules", json={
        "name": "Tier 1 edges",
        "client_tier_id": catalog["tier"].id,
        "adjustment_type": "percentage",
        "adjustment_value": -15,
        "applies_to": "materials",
        "edge_overrides": [{"entity_id": catalog["pencil"].id, "custom_rate": 30.0}],
    })
    assert response.status_code == 200
    data = response.json()
    assert data["applies_to"] == "materials"
    assert data["client_tier_id"] == catalog["tier"].id

    assert [r["name"] for r in client.get("/api/pricing-rules").json()] == ["Tier 1 edges"]


def test_create_rule_validation(client):
    two_scopes = client.post("/api/pricing-rules", json={
        "name": "Confused", "customer_id": 1, "client_type_id": 2,
    })
    assert two_scopes.status_code == 400

    bad_threshold = client.post("/api/pricing-rules", json={
        "name": "Backwards", "min_quote_value": 5000, "max_quote_value": 100,
    })
    assert bad_threshold.status_code == 400

    bad_target = client.post("/api/pricing-rules", json={"name": "Nope", "applies_to": "labour"})
    assert bad_target.status_code == 422

    negative_rate = client.post("/api/pricing-rules", json={
        "name": "Negative", "edge_overrides": [{"entity_id": 1, "custom_rate": -30}],
    })
    assert negative_rate.status_code == 422


def test_price_book_create_and_add_rule(client):
    first = client.post("/api/pricing-rules", json={"name": "A", "adjustment_value": 5}).json()
    second = client.post("/api/pricing-rules", json={"name": "B", "adjustment_value": 10}).json()

    book = client.post("/api/price-books", json={"name": "Trade Pricing", "rule_ids": [first["id"]]})
    assert book.status_code == 200
    book_id = book.json()["id"]

    added = client.post(f"/api/price-books/{book_id}/rules", json={"pricing_rule_id": second["id"]})
    assert added.status_code == 200
    assert added.json()["rule_ids"] == [first["id"], second["id"]]

    duplicate = client.post(f"/api/price-books/{book_id}/rules", json={"pricing_rule_id": second["id"]})
    assert duplicate.status_code == 400

    books = client.get("/api/price-books").json()
    assert [b["name"] for b in books] == ["Trade Pricing"]


def test_seed_default_rules_and_books(client):
    client.get("/api/catalog/seed")
    response = client.get("/api/pricing-rules/seed")
    assert response.status_code == 200

    rules = {r["name"]: r for r in client.get("/api/pricing-rules").json()}
    assert rules["Large Quote Discount"]["min_quote_value"] == 10000.0
    books = {b["name"]: b for b in client.get("/api/price-books").json()}
    assert len(books["Trade Pricing"]["rule_ids"]) == 4
    assert len(books["Wholesale"]["rule_ids"]) == 2
