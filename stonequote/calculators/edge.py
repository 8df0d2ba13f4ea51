"""
Edge profile cost.

Each piece side carries at most one edge type. Lengths are summed per
(edge type, thickness), then minimum length and minimum charge are applied
once per line.
"""

from collections import OrderedDict

from ..money import ZERO, money, mm_to_metres
from .base import BaseCategoryCalculator, CategoryResult


class EdgeCalculator(BaseCategoryCalculator):
    category = "edges"

    def calculate(self, quote, catalog, overrides) -> CategoryResult:
        warnings = []
        metres = OrderedDict()

        for piece in quote.pieces:
            for side, edge_type_id, length_mm in piece.edge_runs():
                if edge_type_id is None:
                    continue
                if edge_type_id not in catalog.edge_types:
                    self.gap(warnings, "missing_edge_type",
                             f"Edge type {edge_type_id} not found; edge left unpriced", edge_type_id)
                    continue
                key = (edge_type_id, piece.thickness_mm)
                metres[key] = metres.get(key, ZERO) + mm_to_metres(length_mm)

        items = []
        total_metres = ZERO
        for (edge_type_id, thickness_mm), linear_metres in metres.items():
            edge_type = catalog.edge_types[edge_type_id]
            rate, overridden = self.pick_rate(
                edge_type_id, edge_type.rate_for_thickness(thickness_mm), overrides.edges,
            )

            billed = linear_metres
            if edge_type.minimum_length is not None and billed < edge_type.minimum_length:
                billed = edge_type.minimum_length
            amount, minimum_applied = self.apply_minimum_charge(billed * rate, edge_type.minimum_charge)

            total_metres += linear_metres
            items.append({
                "edge_type_id": edge_type_id,
                "edge_type_name": edge_type.name,
                "thickness_mm": thickness_mm,
                "linear_metres": self.qty(linear_metres),
                "billed_metres": self.qty(billed),
                "base_rate": money(edge_type.rate_for_thickness(thickness_mm)),
                "applied_rate": money(rate),
                "rate_overridden": overridden,
                "minimum_applied": minimum_applied,
                "subtotal": money(amount),
            })

        return self.make_result(items, warnings, {"total_linear_metres": self.qty(total_metres)})
