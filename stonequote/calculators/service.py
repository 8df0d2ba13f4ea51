"""
Fabrication service cost: cutting, polishing, installation, waterfall ends.

Each service rate is priced from a driving quantity per piece. Which
quantity drives it depends on the service and its unit:

    CUTTING        LINEAR_METRE: full perimeter    SQUARE_METRE: area
    POLISHING      LINEAR_METRE: finished edges    SQUARE_METRE: area
    INSTALLATION   SQUARE_METRE: area              LINEAR_METRE: length
    WATERFALL_END  count (or metres) of waterfall-category edges

FIXED counts one per piece (per finished edge for polishing). The rate is
chosen per piece by thickness. Minimum quantity and minimum charge are
applied once per service over the whole quote.
"""

from decimal import Decimal

from ..models import RateUnit, ServiceType
from ..money import ZERO, money, mm_to_metres
from .base import BaseCategoryCalculator, CategoryResult

WATERFALL_CATEGORY = "waterfall"


class ServiceCalculator(BaseCategoryCalculator):
    category = "services"

    def calculate(self, quote, catalog, overrides) -> CategoryResult:
        items = []
        for service in catalog.service_rates:
            unit = catalog.pricing.unit_for(service.service_type, service.unit)

            total_qty = ZERO
            cost = ZERO
            for piece in quote.pieces:
                qty = self.driving_quantity(service.service_type, unit, piece, catalog)
                if qty <= ZERO:
                    continue
                total_qty += qty
                cost += qty * service.rate_for_thickness(piece.thickness_mm)

            if total_qty <= ZERO:
                continue

            average_rate = cost / total_qty
            billed_qty = total_qty
            if service.minimum_qty is not None and total_qty < service.minimum_qty:
                billed_qty = service.minimum_qty
                cost = average_rate * billed_qty
            amount, minimum_applied = self.apply_minimum_charge(cost, service.minimum_charge)

            items.append({
                "service_type": service.service_type,
                "name": service.name,
                "unit": unit,
                "quantity": self.qty(total_qty),
                "billed_quantity": self.qty(billed_qty),
                "rate": money(average_rate),
                "minimum_applied": minimum_applied,
                "subtotal": money(amount),
            })

        return self.make_result(items, [])

    def driving_quantity(self, service_type: str, unit: str, piece, catalog) -> Decimal:
        area = piece.area_sqm
        perimeter = mm_to_metres(2 * (piece.length_mm + piece.width_mm))
        finished = [
            (edge_type_id, length_mm)
            for _, edge_type_id, length_mm in piece.edge_runs()
            if edge_type_id is not None and edge_type_id in catalog.edge_types
        ]

        if service_type == ServiceType.WATERFALL_END.value:
            waterfall = [
                length_mm for edge_type_id, length_mm in finished
                if catalog.edge_types[edge_type_id].category == WATERFALL_CATEGORY
            ]
            if unit == RateUnit.LINEAR_METRE.value:
                return mm_to_metres(sum(waterfall))
            return Decimal(len(waterfall))

        if service_type == ServiceType.POLISHING.value:
            if unit == RateUnit.LINEAR_METRE.value:
                return mm_to_metres(sum(length for _, length in finished))
            if unit == RateUnit.SQUARE_METRE.value:
                return area
            return Decimal(len(finished))

        if service_type == ServiceType.INSTALLATION.value:
            if unit == RateUnit.LINEAR_METRE.value:
                return mm_to_metres(piece.length_mm)
            if unit == RateUnit.SQUARE_METRE.value:
                return area
            return Decimal(1)

        # CUTTING and any service type added later
        if unit == RateUnit.LINEAR_METRE.value:
            return perimeter
        if unit == RateUnit.SQUARE_METRE.value:
            return area
        return Decimal(1)
