"""
Material cost for the whole quote.

PER_SQUARE_METRE: area x material rate, one line per material.
PER_SLAB: latest optimizer slab count x slab price of the predominant
material, falling back to per-area pricing when either is missing or a
rule overrides the per-m² rate of a priced material.

Pieces with a manual material cost are priced at that cost and leave the
area/slab pool.
"""

from collections import OrderedDict
from decimal import Decimal

from ..models import MaterialPricingBasis
from ..money import ZERO, money
from .base import BaseCategoryCalculator, CategoryResult


class MaterialCalculator(BaseCategoryCalculator):
    category = "materials"

    def calculate(self, quote, catalog, overrides) -> CategoryResult:
        warnings = []
        basis = catalog.pricing.material_pricing_basis

        priced = [p for p in quote.pieces if p.override_material_cost is None]
        overridden = [p for p in quote.pieces if p.override_material_cost is not None]

        items = None
        if basis == MaterialPricingBasis.PER_SLAB.value and priced:
            items = self._price_by_slab(quote, priced, catalog, overrides, warnings)
        if items is None:
            items = self._price_by_area(priced, catalog, overrides, warnings)

        for piece in overridden:
            items.append({
                "kind": "piece_override",
                "piece_id": piece.id,
                "piece_name": piece.name,
                "material_id": piece.material_id,
                "area_sqm": self.qty(piece.area_sqm),
                "subtotal": money(piece.override_material_cost),
            })

        total_area = sum((p.area_sqm for p in quote.pieces), ZERO)
        priced_area = sum((p.area_sqm for p in priced), ZERO)
        slab_lines = [i for i in items if i["kind"] == "slab"]
        summary = {
            "pricing_basis": MaterialPricingBasis.PER_SLAB.value if slab_lines
            else MaterialPricingBasis.PER_SQUARE_METRE.value,
            "total_area_sqm": self.qty(total_area),
            "priced_area_sqm": self.qty(priced_area),
            "slab_count": slab_lines[0]["slab_count"] if slab_lines else None,
        }
        return self.make_result(items, warnings, summary)

    def _price_by_area(self, pieces, catalog, overrides, warnings) -> list:
        # Aggregate area per material, first-seen order
        areas = OrderedDict()
        for piece in pieces:
            areas[piece.material_id] = areas.get(piece.material_id, ZERO) + piece.area_sqm

        items = []
        for material_id, area in areas.items():
            material = catalog.materials.get(material_id) if material_id is not None else None
            if material is None:
                if material_id is None:
                    self.gap(warnings, "missing_material",
                             "Piece(s) without a material priced at $0")
                else:
                    self.gap(warnings, "missing_material",
                             f"Material {material_id} not found; priced at $0", material_id)
                base_rate = ZERO
                name = "Unknown material"
            else:
                base_rate = material.price_per_sqm
                name = material.name

            rate, overridden = self.pick_rate(material_id, base_rate, overrides.materials)
            if material is not None and not overridden and rate <= ZERO:
                self.gap(warnings, "missing_material_rate",
                         f"Material '{name}' has no per-m² price", material_id)

            items.append({
                "kind": "area",
                "material_id": material_id,
                "material_name": name,
                "area_sqm": self.qty(area),
                "base_rate": money(base_rate),
                "applied_rate": money(rate),
                "rate_overridden": overridden,
                "subtotal": money(area * rate),
            })
        return items

    def _price_by_slab(self, quote, pieces, catalog, overrides, warnings):
        """Returns slab line items, or None to fall back to per-area pricing."""
        if not quote.slab_count:
            self.gap(warnings, "no_slab_count",
                     f"Quote {quote.quote_number} has no slab optimization; priced per m²")
            return None

        # Rule overrides are per-m² rates, so a negotiated rate means per-area pricing
        overridden_ids = [p.material_id for p in pieces if p.material_id in overrides.materials]
        if overridden_ids:
            self.gap(warnings, "slab_pricing_overridden",
                     f"Material {overridden_ids[0]} has a per-m² rate override; priced per m²",
                     overridden_ids[0])
            return None

        material_id = self._predominant_material(pieces)
        material = catalog.materials.get(material_id) if material_id is not None else None
        slab_price = material.price_per_slab if material else None
        if slab_price is None:
            self.gap(warnings, "missing_slab_price",
                     f"Material {material_id} has no slab price; priced per m²", material_id)
            return None

        slab_count = Decimal(quote.slab_count)
        return [{
            "kind": "slab",
            "material_id": material_id,
            "material_name": material.name,
            "area_sqm": self.qty(sum((p.area_sqm for p in pieces), ZERO)),
            "slab_count": quote.slab_count,
            "base_rate": money(slab_price),
            "applied_rate": money(slab_price),
            "rate_overridden": False,
            "subtotal": money(slab_count * slab_price),
        }]

    def _predominant_material(self, pieces):
        areas = OrderedDict()
        for piece in pieces:
            areas[piece.material_id] = areas.get(piece.material_id, ZERO) + piece.area_sqm
        # max() keeps the first of equal areas
        return max(areas.items(), key=lambda kv: kv[1])[0]
