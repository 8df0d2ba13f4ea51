"""
Category calculator tests: materials, edges, cutouts, services.

Pure snapshot inputs, no database. Covers:
1-4.   Material per-area, piece overrides, per-slab and its fallbacks
5-9.   Edge length law, thickness rates, minimum length / minimum charge
10-12. Cutout quantities, minimum charge, unknown types
13-17. Service driving quantities, units, minimums
18.    Registry
"""

from decimal import Decimal

import pytest

from stonequote.calculators.cutout import CutoutCalculator
from stonequote.calculators.edge import EdgeCalculator
from stonequote.calculators.material import MaterialCalculator
from stonequote.calculators.registry import get_calculator, list_calculators
from stonequote.calculators.service import ServiceCalculator
from stonequote.errors import ValidationError
from stonequote.pricing.snapshot import (
    NO_OVERRIDES,
    CatalogSnapshot,
    CutoutLine,
    CutoutTypeRate,
    EdgeTypeRate,
    MaterialRate,
    OrganisationPricing,
    PieceSpec,
    QuoteSnapshot,
    RateOverrides,
    ServiceRateSpec,
)

D = Decimal


def _catalog(**overrides):
    data = {
        "materials": {1: MaterialRate(1, "Calacatta Nuvo", D("140.00"), D("2400.00")),
                      2: MaterialRate(2, "Pure White", D("100.00"))},
        "edge_types": {
            10: EdgeTypeRate(10, "Pencil Round", D("35.00")),
            11: EdgeTypeRate(11, "Bullnose", D("45.00"), rate_20mm=D("40.00"), rate_40mm=D("60.00")),
            12: EdgeTypeRate(12, "Waterfall", D("85.00"), category="waterfall"),
            13: EdgeTypeRate(13, "Apron", D("20.00"), minimum_charge=D("50.00")),
            14: EdgeTypeRate(14, "Ogee", D("30.00"), minimum_length=D("2.000")),
        },
        "cutout_types": {
            20: CutoutTypeRate(20, "Undermount Sink", D("220.00"), category="sink"),
            21: CutoutTypeRate(21, "Tap Hole", D("45.00"), category="tap", minimum_charge=D("100.00")),
        },
    }
    data.update(overrides)
    return CatalogSnapshot(**data)


def _piece(piece_id=1, **kwargs):
    data = {"name": f"Piece {piece_id}", "length_mm": 3600, "width_mm": 650,
            "thickness_mm": 20, "material_id": 1}
    data.update(kwargs)
    return PieceSpec(id=piece_id, **data)


def _quote(*pieces, **kwargs):
    return QuoteSnapshot(quote_id=1, quote_number="Q-0001", pieces=tuple(pieces), **kwargs)


# ============================================================
# 1-4. Materials
# ============================================================

def test_material_per_area_aggregates_by_material():
    quote = _quote(_piece(1), _piece(2), _piece(3, material_id=2, length_mm=1000, width_mm=600))
    result = MaterialCalculator().calculate(quote, _catalog(), NO_OVERRIDES)

    # 4.68 m² x $140 + 0.6 m² x $100
    assert result.subtotal == D("715.20")
    assert [i["material_id"] for i in result.items] == [1, 2]
    assert result.items[0]["area_sqm"] == D("4.680")
    assert result.summary["pricing_basis"] == "PER_SQUARE_METRE"
    assert result.warnings == ()


def test_material_piece_override_ignores_catalog_rate():
    """A manual piece cost replaces that piece's material cost outright."""
    quote = _quote(_piece(1), _piece(2, override_material_cost=D("99.00")))
    cheap = _catalog(materials={1: MaterialRate(1, "Calacatta Nuvo", D("140.00"))})
    dear = _catalog(materials={1: MaterialRate(1, "Calacatta Nuvo", D("900.00"))})

    cheap_result = MaterialCalculator().calculate(quote, cheap, NO_OVERRIDES)
    dear_result = MaterialCalculator().calculate(quote, dear, NO_OVERRIDES)

    cheap_override = [i for i in cheap_result.items if i["kind"] == "piece_override"]
    dear_override = [i for i in dear_result.items if i["kind"] == "piece_override"]
    assert cheap_override[0]["subtotal"] == dear_override[0]["subtotal"] == D("99.00")
    # 2.34 m² x 140 + 99
    assert cheap_result.subtotal == D("426.60")


def test_material_per_slab_uses_slab_count():
    pricing = OrganisationPricing(material_pricing_basis="PER_SLAB")
    quote = _quote(_piece(1), _piece(2), slab_count=2)
    result = MaterialCalculator().calculate(quote, _catalog(pricing=pricing), NO_OVERRIDES)

    assert result.subtotal == D("4800.00")
    assert result.summary["pricing_basis"] == "PER_SLAB"
    assert result.summary["slab_count"] == 2
    assert result.warnings == ()


def test_material_per_slab_falls_back_without_slab_count():
    pricing = OrganisationPricing(material_pricing_basis="PER_SLAB")
    quote = _quote(_piece(1), _piece(2))
    result = MaterialCalculator().calculate(quote, _catalog(pricing=pricing), NO_OVERRIDES)

    assert result.subtotal == D("655.20")
    assert result.summary["pricing_basis"] == "PER_SQUARE_METRE"
    assert [w.code for w in result.warnings] == ["no_slab_count"]


def test_material_per_slab_falls_back_without_slab_price():
    pricing = OrganisationPricing(material_pricing_basis="PER_SLAB")
    quote = _quote(_piece(1, material_id=2), slab_count=1)
    result = MaterialCalculator().calculate(quote, _catalog(pricing=pricing), NO_OVERRIDES)

    assert result.subtotal == D("234.00")
    assert [w.code for w in result.warnings] == ["missing_slab_price"]


def test_material_per_slab_with_rate_override_prices_per_area():
    """A rule's material override is a per-m² rate, never a slab price."""
    pricing = OrganisationPricing(material_pricing_basis="PER_SLAB")
    quote = _quote(_piece(1), _piece(2), slab_count=2)
    overrides = RateOverrides(materials={1: D("120.00")})
    result = MaterialCalculator().calculate(quote, _catalog(pricing=pricing), overrides)

    # 4.68 m² x $120
    assert result.subtotal == D("561.60")
    assert result.items[0]["kind"] == "area"
    assert result.items[0]["applied_rate"] == D("120.00")
    assert result.summary["pricing_basis"] == "PER_SQUARE_METRE"
    assert [w.code for w in result.warnings] == ["slab_pricing_overridden"]


def test_material_per_slab_ignores_override_for_unpriced_material():
    pricing = OrganisationPricing(material_pricing_basis="PER_SLAB")
    quote = _quote(_piece(1), _piece(2), slab_count=2)
    overrides = RateOverrides(materials={2: D("10.00")})
    result = MaterialCalculator().calculate(quote, _catalog(pricing=pricing), overrides)

    assert result.subtotal == D("4800.00")
    assert result.items[0]["applied_rate"] == D("2400.00")
    assert result.warnings == ()


def test_material_rate_override_replaces_catalog_rate():
    overrides = RateOverrides(materials={1: D("120.00")})
    result = MaterialCalculator().calculate(_quote(_piece(1)), _catalog(), overrides)
    assert result.subtotal == D("280.80")
    assert result.items[0]["rate_overridden"] is True
    assert result.items[0]["base_rate"] == D("140.00")


def test_material_missing_lookup_is_zero_rate_with_warning():
    quote = _quote(_piece(1, material_id=999), _piece(2, material_id=None))
    result = MaterialCalculator().calculate(quote, _catalog(), NO_OVERRIDES)
    assert result.subtotal == D("0.00")
    assert {w.code for w in result.warnings} == {"missing_material"}


# ============================================================
# 5-9. Edges
# ============================================================

def test_edge_length_law_top_and_left_only():
    """Top contributes width, left contributes length. Never perimeter."""
    piece = _piece(1, length_mm=2400, width_mm=600, edge_top=10, edge_left=10)
    result = EdgeCalculator().calculate(_quote(piece), _catalog(), NO_OVERRIDES)

    assert result.summary["total_linear_metres"] == D("3.000")
    assert result.subtotal == D("105.00")


def test_edge_aggregates_per_type_and_thickness():
    pieces = (
        _piece(1, edge_left=11),
        _piece(2, edge_left=11),
        _piece(3, thickness_mm=40, edge_left=11),
    )
    result = EdgeCalculator().calculate(_quote(*pieces), _catalog(), NO_OVERRIDES)

    assert len(result.items) == 2
    thin, thick = result.items
    assert (thin["thickness_mm"], thin["linear_metres"], thin["applied_rate"]) == (20, D("7.200"), D("40.00"))
    assert (thick["thickness_mm"], thick["linear_metres"], thick["applied_rate"]) == (40, D("3.600"), D("60.00"))
    assert result.subtotal == D("504.00")


def test_edge_minimum_charge_floor():
    """0.3 m² piece, raw edge cost $12, minimum charge $50."""
    piece = _piece(1, length_mm=600, width_mm=500, edge_left=13)
    result = EdgeCalculator().calculate(_quote(piece), _catalog(), NO_OVERRIDES)

    assert result.items[0]["minimum_applied"] is True
    assert result.subtotal == D("50.00")


def test_edge_minimum_length_bills_minimum():
    piece = _piece(1, length_mm=1200, width_mm=600, edge_left=14)
    result = EdgeCalculator().calculate(_quote(piece), _catalog(), NO_OVERRIDES)

    assert result.items[0]["linear_metres"] == D("1.200")
    assert result.items[0]["billed_metres"] == D("2.000")
    assert result.subtotal == D("60.00")


def test_edge_unknown_type_is_skipped_with_warning():
    piece = _piece(1, edge_left=999, edge_right=10)
    result = EdgeCalculator().calculate(_quote(piece), _catalog(), NO_OVERRIDES)

    assert result.subtotal == D("126.00")
    assert [w.code for w in result.warnings] == ["missing_edge_type"]
    assert result.warnings[0].entity_id == 999


def test_edge_rate_override():
    piece = _piece(1, edge_left=10)
    overrides = RateOverrides(edges={10: D("30.00")})
    result = EdgeCalculator().calculate(_quote(piece), _catalog(), overrides)
    assert result.subtotal == D("108.00")


# ============================================================
# 10-12. Cutouts
# ============================================================

def test_cutout_quantity_times_rate():
    pieces = (
        _piece(1, cutouts=(CutoutLine(20, 1), CutoutLine(21, 3))),
        _piece(2, cutouts=(CutoutLine(20, 1),)),
    )
    result = CutoutCalculator().calculate(_quote(*pieces), _catalog(), NO_OVERRIDES)

    by_id = {i["cutout_type_id"]: i for i in result.items}
    assert by_id[20]["quantity"] == 2
    assert by_id[20]["subtotal"] == D("440.00")
    assert by_id[21]["subtotal"] == D("135.00")
    assert result.subtotal == D("575.00")


def test_cutout_minimum_charge():
    piece = _piece(1, cutouts=(CutoutLine(21, 1),))
    result = CutoutCalculator().calculate(_quote(piece), _catalog(), NO_OVERRIDES)
    assert result.subtotal == D("100.00")
    assert result.items[0]["minimum_applied"] is True


def test_cutout_unknown_type_warns():
    piece = _piece(1, cutouts=(CutoutLine(404, 2), CutoutLine(20, 1)))
    result = CutoutCalculator().calculate(_quote(piece), _catalog(), NO_OVERRIDES)
    assert result.subtotal == D("220.00")
    assert [w.code for w in result.warnings] == ["missing_cutout_type"]


# ============================================================
# 13-17. Services
# ============================================================

SERVICES = (
    ServiceRateSpec("CUTTING", "Cutting", D("17.50"), D("45.00"), "LINEAR_METRE"),
    ServiceRateSpec("POLISHING", "Polishing", D("45.00"), D("115.00"), "LINEAR_METRE"),
    ServiceRateSpec("INSTALLATION", "Installation", D("140.00"), D("170.00"), "SQUARE_METRE"),
    ServiceRateSpec("WATERFALL_END", "Waterfall End", D("300.00"), D("650.00"), "FIXED"),
)


def _service_lines(result):
    return {i["service_type"]: i for i in result.items}


def test_service_driving_quantities():
    piece = _piece(1, length_mm=2000, width_mm=600, edge_top=10, edge_left=12)
    result = ServiceCalculator().calculate(_quote(piece), _catalog(service_rates=SERVICES), NO_OVERRIDES)
    lines = _service_lines(result)

    # Cutting: perimeter 5.2 m x 17.50
    assert lines["CUTTING"]["quantity"] == D("5.200")
    assert lines["CUTTING"]["subtotal"] == D("91.00")
    # Polishing: finished edges 0.6 + 2.0 m x 45
    assert lines["POLISHING"]["quantity"] == D("2.600")
    assert lines["POLISHING"]["subtotal"] == D("117.00")
    # Installation: 1.2 m² x 140
    assert lines["INSTALLATION"]["subtotal"] == D("168.00")
    # One waterfall edge
    assert lines["WATERFALL_END"]["quantity"] == D("1.000")
    assert lines["WATERFALL_END"]["subtotal"] == D("300.00")
    assert result.subtotal == D("676.00")


def test_service_rate_by_piece_thickness():
    pieces = (
        _piece(1, length_mm=1000, width_mm=1000),
        _piece(2, length_mm=1000, width_mm=1000, thickness_mm=40),
    )
    services = (SERVICES[2],)
    result = ServiceCalculator().calculate(_quote(*pieces), _catalog(service_rates=services), NO_OVERRIDES)
    assert result.subtotal == D("310.00")


def test_service_unit_from_organisation_settings():
    pricing = OrganisationPricing(service_units={"CUTTING": "SQUARE_METRE"})
    piece = _piece(1, length_mm=2000, width_mm=500)
    catalog = _catalog(service_rates=(SERVICES[0],), pricing=pricing)
    result = ServiceCalculator().calculate(_quote(piece), catalog, NO_OVERRIDES)

    line = result.items[0]
    assert line["unit"] == "SQUARE_METRE"
    assert line["quantity"] == D("1.000")
    assert result.subtotal == D("17.50")


def test_service_minimums():
    services = (
        ServiceRateSpec("INSTALLATION", "Installation", D("140.00"), D("170.00"), "SQUARE_METRE",
                        minimum_qty=D("2.0")),
        ServiceRateSpec("CUTTING", "Cutting", D("17.50"), D("45.00"), "LINEAR_METRE",
                        minimum_charge=D("150.00")),
    )
    piece = _piece(1, length_mm=1000, width_mm=1000)
    result = ServiceCalculator().calculate(_quote(piece), _catalog(service_rates=services), NO_OVERRIDES)
    lines = _service_lines(result)

    assert lines["INSTALLATION"]["billed_quantity"] == D("2.000")
    assert lines["INSTALLATION"]["subtotal"] == D("280.00")
    assert lines["CUTTING"]["minimum_applied"] is True
    assert lines["CUTTING"]["subtotal"] == D("150.00")


def test_service_without_driving_quantity_is_omitted():
    piece = _piece(1, edge_left=10)
    services = (SERVICES[3],)
    result = ServiceCalculator().calculate(_quote(piece), _catalog(service_rates=services), NO_OVERRIDES)
    assert result.items == ()
    assert result.subtotal == D("0.00")


# ============================================================
# 18. Registry / piece validation
# ============================================================

def test_registry_lists_all_categories():
    assert list_calculators() == ["materials", "edges", "cutouts", "services"]
    assert isinstance(get_calculator("edges"), EdgeCalculator)
    with pytest.raises(ValueError):
        get_calculator("labour")


def test_piece_with_non_positive_dimension_is_rejected():
    with pytest.raises(ValidationError):
        _piece(1, width_mm=0)
    with pytest.raises(ValidationError):
        _piece(1, override_material_cost=D("-5"))
