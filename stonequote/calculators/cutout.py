"""
Cutout cost: quantity x rate per cutout type, minimum charge per type.
"""

from collections import OrderedDict

from ..money import money
from .base import BaseCategoryCalculator, CategoryResult


class CutoutCalculator(BaseCategoryCalculator):
    category = "cutouts"

    def calculate(self, quote, catalog, overrides) -> CategoryResult:
        warnings = []
        counts = OrderedDict()

        for piece in quote.pieces:
            for line in piece.cutouts:
                if line.cutout_type_id not in catalog.cutout_types:
                    self.gap(warnings, "missing_cutout_type",
                             f"Cutout type {line.cutout_type_id} not found; cutout left unpriced",
                             line.cutout_type_id)
                    continue
                counts[line.cutout_type_id] = counts.get(line.cutout_type_id, 0) + line.quantity

        items = []
        for cutout_type_id, count in counts.items():
            if count <= 0:
                continue
            cutout_type = catalog.cutout_types[cutout_type_id]
            rate, overridden = self.pick_rate(cutout_type_id, cutout_type.base_rate, overrides.cutouts)
            amount, minimum_applied = self.apply_minimum_charge(rate * count, cutout_type.minimum_charge)
            items.append({
                "cutout_type_id": cutout_type_id,
                "cutout_type_name": cutout_type.name,
                "category": cutout_type.category,
                "quantity": count,
                "base_rate": money(cutout_type.base_rate),
                "applied_rate": money(rate),
                "rate_overridden": overridden,
                "minimum_applied": minimum_applied,
                "subtotal": money(amount),
            })

        return self.make_result(items, warnings, {"total_cutouts": sum(i["quantity"] for i in items)})
