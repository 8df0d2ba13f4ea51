from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from .models import AdjustmentType, AppliesTo


# --- Catalog ---

class EdgeType(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    base_rate: float
    rate_20mm: Optional[float] = None
    rate_40mm: Optional[float] = None
    minimum_charge: Optional[float] = None
    minimum_length: Optional[float] = None
    is_curved: bool = False
    sort_order: int = 0
    is_active: bool = True
    class Config:
        from_attributes = True

class CutoutType(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    base_rate: float
    minimum_charge: Optional[float] = None
    sort_order: int = 0
    is_active: bool = True
    class Config:
        from_attributes = True

class ServiceRate(BaseModel):
    id: int
    service_type: str
    name: str
    description: Optional[str] = None
    rate_20mm: float
    rate_40mm: float
    unit: str
    minimum_charge: Optional[float] = None
    minimum_qty: Optional[float] = None
    is_active: bool = True
    class Config:
        from_attributes = True


# --- Pricing rules / price books ---

class RateOverrideIn(BaseModel):
    entity_id: int
    custom_rate: float = Field(ge=0)

class PricingRuleCreate(BaseModel):
    name: str
    description: Optional[str] = None
    priority: Optional[int] = None
    customer_id: Optional[int] = None
    client_type_id: Optional[int] = None
    client_tier_id: Optional[int] = None
    min_quote_value: Optional[float] = Field(default=None, ge=0)
    max_quote_value: Optional[float] = Field(default=None, ge=0)
    adjustment_type: AdjustmentType = AdjustmentType.PERCENTAGE
    adjustment_value: float = 0.0
    applies_to: AppliesTo = AppliesTo.ALL
    is_active: bool = True
    edge_overrides: List[RateOverrideIn] = []
    cutout_overrides: List[RateOverrideIn] = []
    material_overrides: List[RateOverrideIn] = []

class PricingRule(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    priority: Optional[int] = None
    customer_id: Optional[int] = None
    client_type_id: Optional[int] = None
    client_tier_id: Optional[int] = None
    min_quote_value: Optional[float] = None
    max_quote_value: Optional[float] = None
    adjustment_type: str
    adjustment_value: float
    applies_to: str
    is_active: bool = True
    class Config:
        from_attributes = True

class PriceBookCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_default: bool = False
    rule_ids: List[int] = []

class PriceBookRuleAdd(BaseModel):
    pricing_rule_id: int
    sort_order: Optional[int] = None

class PriceBook(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_default: bool = False
    is_active: bool = True
    rule_ids: List[int] = []


# --- Calculation result ---

class MaterialLine(BaseModel):
    kind: str  # 'area' | 'slab' | 'piece_override'
    material_id: Optional[int] = None
    material_name: Optional[str] = None
    piece_id: Optional[int] = None
    piece_name: Optional[str] = None
    area_sqm: Decimal
    slab_count: Optional[int] = None
    base_rate: Optional[Decimal] = None
    applied_rate: Optional[Decimal] = None
    rate_overridden: bool = False
    subtotal: Decimal

class MaterialBreakdown(BaseModel):
    pricing_basis: str
    total_area_sqm: Decimal
    priced_area_sqm: Decimal
    slab_count: Optional[int] = None
    items: List[MaterialLine] = []
    subtotal: Decimal
    discount: Decimal
    total: Decimal

class EdgeLine(BaseModel):
    edge_type_id: int
    edge_type_name: str
    thickness_mm: int
    linear_metres: Decimal
    billed_metres: Decimal
    base_rate: Decimal
    applied_rate: Decimal
    rate_overridden: bool = False
    minimum_applied: bool = False
    subtotal: Decimal

class EdgeBreakdown(BaseModel):
    total_linear_metres: Decimal
    items: List[EdgeLine] = []
    subtotal: Decimal
    discount: Decimal
    total: Decimal

class CutoutLine(BaseModel):
    cutout_type_id: int
    cutout_type_name: str
    category: Optional[str] = None
    quantity: int
    base_rate: Decimal
    applied_rate: Decimal
    rate_overridden: bool = False
    minimum_applied: bool = False
    subtotal: Decimal

class CutoutBreakdown(BaseModel):
    total_cutouts: int = 0
    items: List[CutoutLine] = []
    subtotal: Decimal
    discount: Decimal
    total: Decimal

class ServiceLine(BaseModel):
    service_type: str
    name: str
    unit: str
    quantity: Decimal
    billed_quantity: Decimal
    rate: Decimal
    minimum_applied: bool = False
    subtotal: Decimal

class ServiceBreakdown(BaseModel):
    items: List[ServiceLine] = []
    subtotal: Decimal
    total: Decimal

class DeliveryBreakdown(BaseModel):
    address: Optional[str] = None
    distance_km: Optional[Decimal] = None
    zone: Optional[str] = None
    calculated_cost: Optional[Decimal] = None
    override_cost: Optional[Decimal] = None
    final_cost: Decimal

class TemplatingBreakdown(BaseModel):
    required: bool = False
    distance_km: Optional[Decimal] = None
    calculated_cost: Optional[Decimal] = None
    override_cost: Optional[Decimal] = None
    final_cost: Decimal

class Breakdown(BaseModel):
    materials: MaterialBreakdown
    edges: EdgeBreakdown
    cutouts: CutoutBreakdown
    services: ServiceBreakdown
    delivery: DeliveryBreakdown
    templating: TemplatingBreakdown

class AppliedRule(BaseModel):
    rule_id: int
    rule_name: str
    priority: int
    effect: str

class DiscountRecord(BaseModel):
    rule_id: int
    rule_name: str
    type: str  # 'percentage' | 'fixed'
    value: Decimal
    applied_to: str
    savings: Decimal

class PriceBookRef(BaseModel):
    id: int
    name: str

class QuoteOverrides(BaseModel):
    subtotal: Optional[Decimal] = None
    total: Optional[Decimal] = None
    reason: Optional[str] = None

class DataGap(BaseModel):
    code: str
    message: str
    entity_id: Optional[int] = None

class CalculationResult(BaseModel):
    quote_id: int
    quote_number: str
    currency: str
    subtotal: Decimal
    total_discount: Decimal
    total: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_including_tax: Decimal
    breakdown: Breakdown
    applied_rules: List[AppliedRule] = []
    discounts: List[DiscountRecord] = []
    price_book: Optional[PriceBookRef] = None
    overrides: QuoteOverrides
    warnings: List[DataGap] = []
    calculated_at: datetime


# --- Requests ---

class CalculateRequest(BaseModel):
    price_book_id: Optional[int] = None

class QuoteVersionCreate(BaseModel):
    change_type: str = "RECALCULATED"
    change_summary: Optional[str] = None
    changed_by: Optional[str] = None

class QuoteVersion(BaseModel):
    id: int
    quote_id: int
    version_number: int
    change_type: str
    change_summary: Optional[str] = None
    changed_by: Optional[str] = None
    subtotal: Optional[float] = None
    total: Optional[float] = None
    created_at: datetime
    class Config:
        from_attributes = True
