"""
Immutable, point-in-time view of everything one calculation needs.

The Catalog Reader (catalog.py) builds these from the database up front; the
calculators, rule resolver and discount applicator only ever see these
frozen values, so both calculator passes price against the same data.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Tuple, Union

from ..errors import ValidationError
from ..money import ZERO, area_sqm, to_decimal
from ..models import MaterialPricingBasis

THIN_THRESHOLD_MM = 20  # ≤ 20mm prices at the 20mm rate, thicker at the 40mm rate


# --- Rule scope (tagged variant) ---

@dataclass(frozen=True)
class DefaultScope:
    """Applies to every customer."""


@dataclass(frozen=True)
class CustomerScope:
    customer_id: int


@dataclass(frozen=True)
class ClientTypeScope:
    client_type_id: int


@dataclass(frozen=True)
class ClientTierScope:
    client_tier_id: int
    tier_priority: int = 0


RuleScope = Union[DefaultScope, CustomerScope, ClientTypeScope, ClientTierScope]


def build_scope(customer_id=None, client_type_id=None, client_tier_id=None,
                tier_priority: int = 0) -> RuleScope:
    """Turn the three nullable scope columns into exactly one scope variant."""
    set_fields = [
        name for name, value in (
            ("customer_id", customer_id),
            ("client_type_id", client_type_id),
            ("client_tier_id", client_tier_id),
        ) if value is not None
    ]
    if len(set_fields) > 1:
        raise ValidationError(
            f"A pricing rule may be scoped to at most one of customer, client type "
            f"or client tier, got {', '.join(set_fields)}"
        )
    if customer_id is not None:
        return CustomerScope(customer_id)
    if client_type_id is not None:
        return ClientTypeScope(client_type_id)
    if client_tier_id is not None:
        return ClientTierScope(client_tier_id, tier_priority or 0)
    return DefaultScope()


# --- Catalog entries ---

@dataclass(frozen=True)
class MaterialRate:
    id: int
    name: str
    price_per_sqm: Decimal
    price_per_slab: Optional[Decimal] = None


@dataclass(frozen=True)
class EdgeTypeRate:
    id: int
    name: str
    base_rate: Decimal
    category: str = "polish"
    rate_20mm: Optional[Decimal] = None
    rate_40mm: Optional[Decimal] = None
    minimum_charge: Optional[Decimal] = None
    minimum_length: Optional[Decimal] = None

    def rate_for_thickness(self, thickness_mm: int) -> Decimal:
        if thickness_mm <= THIN_THRESHOLD_MM and self.rate_20mm is not None:
            return self.rate_20mm
        if thickness_mm > THIN_THRESHOLD_MM and self.rate_40mm is not None:
            return self.rate_40mm
        return self.base_rate


@dataclass(frozen=True)
class CutoutTypeRate:
    id: int
    name: str
    base_rate: Decimal
    category: str = "standard"
    minimum_charge: Optional[Decimal] = None


@dataclass(frozen=True)
class ServiceRateSpec:
    service_type: str
    name: str
    rate_20mm: Decimal
    rate_40mm: Decimal
    unit: str
    minimum_charge: Optional[Decimal] = None
    minimum_qty: Optional[Decimal] = None

    def rate_for_thickness(self, thickness_mm: int) -> Decimal:
        return self.rate_20mm if thickness_mm <= THIN_THRESHOLD_MM else self.rate_40mm


# --- Rules ---

@dataclass(frozen=True)
class PricingRuleSpec:
    id: int
    name: str
    scope: RuleScope
    adjustment_type: str
    adjustment_value: Decimal
    applies_to: str
    priority: Optional[int] = None
    min_quote_value: Optional[Decimal] = None
    max_quote_value: Optional[Decimal] = None
    # (entity_id, custom_rate) pairs in row order
    edge_overrides: Tuple[Tuple[int, Decimal], ...] = ()
    cutout_overrides: Tuple[Tuple[int, Decimal], ...] = ()
    material_overrides: Tuple[Tuple[int, Decimal], ...] = ()

    def __post_init__(self):
        if (self.min_quote_value is not None and self.max_quote_value is not None
                and self.min_quote_value > self.max_quote_value):
            raise ValidationError(
                f"Pricing rule '{self.name}' has min quote value {self.min_quote_value} "
                f"greater than max quote value {self.max_quote_value}"
            )

    @property
    def has_threshold(self) -> bool:
        return self.min_quote_value is not None or self.max_quote_value is not None


@dataclass(frozen=True)
class PriceBookSpec:
    id: int
    name: str
    rule_ids: Tuple[int, ...] = ()  # in price-book sort order


@dataclass(frozen=True)
class OrganisationPricing:
    material_pricing_basis: str = MaterialPricingBasis.PER_SQUARE_METRE.value
    currency: str = "AUD"
    tax_rate: Decimal = Decimal("10")
    service_units: Mapping[str, str] = field(default_factory=dict)

    def unit_for(self, service_type: str, default: str) -> str:
        return self.service_units.get(service_type) or default


@dataclass(frozen=True)
class CatalogSnapshot:
    materials: Mapping[int, MaterialRate]
    edge_types: Mapping[int, EdgeTypeRate]
    cutout_types: Mapping[int, CutoutTypeRate]
    service_rates: Tuple[ServiceRateSpec, ...] = ()
    rules: Tuple[PricingRuleSpec, ...] = ()
    price_books: Mapping[int, PriceBookSpec] = field(default_factory=dict)
    pricing: OrganisationPricing = field(default_factory=OrganisationPricing)


# --- Quote ---

@dataclass(frozen=True)
class CutoutLine:
    cutout_type_id: int
    quantity: int = 1


@dataclass(frozen=True)
class PieceSpec:
    id: int
    name: str
    length_mm: int
    width_mm: int
    thickness_mm: int
    material_id: Optional[int] = None
    edge_top: Optional[int] = None
    edge_bottom: Optional[int] = None
    edge_left: Optional[int] = None
    edge_right: Optional[int] = None
    cutouts: Tuple[CutoutLine, ...] = ()
    override_material_cost: Optional[Decimal] = None
    room_name: str = ""

    def __post_init__(self):
        for dim in ("length_mm", "width_mm", "thickness_mm"):
            value = getattr(self, dim)
            if value is None or value <= 0:
                raise ValidationError(f"Piece '{self.name}' ({self.id}) has invalid {dim}: {value}")
        if self.override_material_cost is not None and self.override_material_cost < ZERO:
            raise ValidationError(f"Piece '{self.name}' ({self.id}) has a negative material override")

    @property
    def area_sqm(self) -> Decimal:
        return area_sqm(self.length_mm, self.width_mm)

    def edge_runs(self) -> list:
        """
        (side, edge_type_id, length_mm) for each side. Top/bottom run along the
        width, left/right along the length. One side each, never perimeter.
        """
        return [
            ("top", self.edge_top, self.width_mm),
            ("bottom", self.edge_bottom, self.width_mm),
            ("left", self.edge_left, self.length_mm),
            ("right", self.edge_right, self.length_mm),
        ]


@dataclass(frozen=True)
class CustomerContext:
    customer_id: int
    client_type_id: Optional[int] = None
    client_tier_id: Optional[int] = None
    price_book_id: Optional[int] = None


@dataclass(frozen=True)
class QuoteSnapshot:
    quote_id: int
    quote_number: str
    pieces: Tuple[PieceSpec, ...]
    customer: Optional[CustomerContext] = None
    price_book_id: Optional[int] = None
    slab_count: Optional[int] = None

    delivery_address: Optional[str] = None
    delivery_distance_km: Optional[Decimal] = None
    delivery_zone: Optional[str] = None
    delivery_cost: Optional[Decimal] = None
    templating_required: bool = False
    templating_distance_km: Optional[Decimal] = None
    templating_cost: Optional[Decimal] = None

    override_subtotal: Optional[Decimal] = None
    override_total: Optional[Decimal] = None
    override_delivery_cost: Optional[Decimal] = None
    override_templating_cost: Optional[Decimal] = None
    override_reason: Optional[str] = None

    def __post_init__(self):
        for name in ("override_subtotal", "override_total",
                     "override_delivery_cost", "override_templating_cost"):
            value = getattr(self, name)
            if value is not None and to_decimal(value) < ZERO:
                raise ValidationError(f"Quote {self.quote_number}: {name} cannot be negative")


# --- Rate overrides (output of the first discount pass) ---

@dataclass(frozen=True)
class RateOverrides:
    """Winning custom rate per entity id. Empty means catalog rates everywhere."""
    edges: Mapping[int, Decimal] = field(default_factory=dict)
    cutouts: Mapping[int, Decimal] = field(default_factory=dict)
    materials: Mapping[int, Decimal] = field(default_factory=dict)


NO_OVERRIDES = RateOverrides()
