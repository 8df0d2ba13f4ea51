"""
Calculator registry: maps pricing categories to calculator classes.

Order matters: it is the order lines appear in the breakdown.
"""

from .base import BaseCategoryCalculator
from .cutout import CutoutCalculator
from .edge import EdgeCalculator
from .material import MaterialCalculator
from .service import ServiceCalculator

CALCULATOR_REGISTRY: dict[str, type] = {
    "materials": MaterialCalculator,
    "edges": EdgeCalculator,
    "cutouts": CutoutCalculator,
    "services": ServiceCalculator,
}

# Categories a pricing rule can discount. Services are never discounted.
DISCOUNTABLE_CATEGORIES = ("materials", "edges", "cutouts")


def get_calculator(category: str) -> BaseCategoryCalculator:
    """Returns an instance of the calculator for a category, or raises ValueError."""
    if category not in CALCULATOR_REGISTRY:
        raise ValueError(
            f"No calculator registered for category: {category}. "
            f"Available: {list(CALCULATOR_REGISTRY.keys())}"
        )
    return CALCULATOR_REGISTRY[category]()


def list_calculators() -> list[str]:
    """List all registered pricing categories."""
    return list(CALCULATOR_REGISTRY.keys())
