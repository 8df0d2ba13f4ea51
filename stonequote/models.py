from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey, Enum, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base
import enum


# --- Enums ---

class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class MaterialPricingBasis(str, enum.Enum):
    PER_SQUARE_METRE = "PER_SQUARE_METRE"
    PER_SLAB = "PER_SLAB"


class ServiceType(str, enum.Enum):
    CUTTING = "CUTTING"
    POLISHING = "POLISHING"
    INSTALLATION = "INSTALLATION"
    WATERFALL_END = "WATERFALL_END"


class RateUnit(str, enum.Enum):
    LINEAR_METRE = "LINEAR_METRE"
    SQUARE_METRE = "SQUARE_METRE"
    FIXED = "FIXED"


class AdjustmentType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class AppliesTo(str, enum.Enum):
    MATERIALS = "materials"
    EDGES = "edges"
    CUTOUTS = "cutouts"
    ALL = "all"


# service_type, unit, adjustment_type and applies_to are VARCHAR columns
# validated against the enums above.


# --- Customer classification ---

class ClientType(Base):
    """Trade vs retail style classification (Cabinet Maker, Builder, ...)."""
    __tablename__ = "client_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)


class ClientTier(Base):
    """Tier 1 / Tier 2 / ... The tier's priority feeds rule ordering."""
    __tablename__ = "client_tiers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(Integer, default=0)
    is_default = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    company = Column(String)
    email = Column(String)
    phone = Column(String)
    client_type_id = Column(Integer, ForeignKey("client_types.id"), nullable=True)
    client_tier_id = Column(Integer, ForeignKey("client_tiers.id"), nullable=True)
    price_book_id = Column(Integer, ForeignKey("price_books.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    client_type = relationship("ClientType")
    client_tier = relationship("ClientTier")
    price_book = relationship("PriceBook")
    quotes = relationship("Quote", back_populates="customer")


# --- Catalog ---

class Material(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    collection = Column(String, nullable=True)
    price_per_sqm = Column(Numeric(12, 2), nullable=False, default=0)
    price_per_slab = Column(Numeric(12, 2), nullable=True)  # Only used under PER_SLAB basis
    is_active = Column(Boolean, default=True)


class EdgeType(Base):
    __tablename__ = "edge_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    category = Column(String, default="polish")  # 'polish' | 'waterfall' | 'apron' | ...
    base_rate = Column(Numeric(12, 2), nullable=False, default=0)  # per linear metre
    rate_20mm = Column(Numeric(12, 2), nullable=True)
    rate_40mm = Column(Numeric(12, 2), nullable=True)
    minimum_charge = Column(Numeric(12, 2), nullable=True)
    minimum_length = Column(Numeric(12, 3), nullable=True)  # linear metres
    is_curved = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)


class CutoutType(Base):
    __tablename__ = "cutout_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    category = Column(String, default="standard")  # 'sink' | 'cooktop' | 'tap' | ...
    base_rate = Column(Numeric(12, 2), nullable=False, default=0)
    minimum_charge = Column(Numeric(12, 2), nullable=True)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)


class ServiceRate(Base):
    """Cutting, polishing, installation and waterfall-end rates by thickness."""
    __tablename__ = "service_rates"

    id = Column(Integer, primary_key=True, index=True)
    service_type = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    rate_20mm = Column(Numeric(12, 2), nullable=False, default=0)
    rate_40mm = Column(Numeric(12, 2), nullable=False, default=0)
    unit = Column(String, default=RateUnit.LINEAR_METRE.value)
    minimum_charge = Column(Numeric(12, 2), nullable=True)
    minimum_qty = Column(Numeric(12, 3), nullable=True)
    is_active = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DeliveryZone(Base):
    __tablename__ = "delivery_zones"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    max_distance_km = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)


class PricingSettings(Base):
    """Organisation-level pricing configuration. Null columns fall back to config.settings."""
    __tablename__ = "pricing_settings"

    id = Column(Integer, primary_key=True, index=True)
    organisation_id = Column(String, unique=True, nullable=False, default="default")
    material_pricing_basis = Column(String, nullable=True)
    cutting_unit = Column(String, nullable=True)
    polishing_unit = Column(String, nullable=True)
    installation_unit = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    tax_rate = Column(Numeric(6, 3), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# --- Pricing rules ---

class PricingRule(Base):
    """
    A scoped price adjustment. At most one of customer_id / client_type_id /
    client_tier_id is set; all null means a default rule.
    """
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(Integer, nullable=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    client_type_id = Column(Integer, ForeignKey("client_types.id"), nullable=True)
    client_tier_id = Column(Integer, ForeignKey("client_tiers.id"), nullable=True)
    min_quote_value = Column(Numeric(12, 2), nullable=True)
    max_quote_value = Column(Numeric(12, 2), nullable=True)
    adjustment_type = Column(String, default=AdjustmentType.PERCENTAGE.value)
    adjustment_value = Column(Numeric(12, 2), default=0)
    applies_to = Column(String, default=AppliesTo.ALL.value)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    client_tier = relationship("ClientTier")
    edge_overrides = relationship("PricingRuleEdge", cascade="all, delete-orphan")
    cutout_overrides = relationship("PricingRuleCutout", cascade="all, delete-orphan")
    material_overrides = relationship("PricingRuleMaterial", cascade="all, delete-orphan")


class PricingRuleEdge(Base):
    __tablename__ = "pricing_rule_edges"

    id = Column(Integer, primary_key=True, index=True)
    pricing_rule_id = Column(Integer, ForeignKey("pricing_rules.id"), nullable=False)
    edge_type_id = Column(Integer, ForeignKey("edge_types.id"), nullable=False)
    custom_rate = Column(Numeric(12, 2), nullable=True)


class PricingRuleCutout(Base):
    __tablename__ = "pricing_rule_cutouts"

    id = Column(Integer, primary_key=True, index=True)
    pricing_rule_id = Column(Integer, ForeignKey("pricing_rules.id"), nullable=False)
    cutout_type_id = Column(Integer, ForeignKey("cutout_types.id"), nullable=False)
    custom_rate = Column(Numeric(12, 2), nullable=True)


class PricingRuleMaterial(Base):
    __tablename__ = "pricing_rule_materials"

    id = Column(Integer, primary_key=True, index=True)
    pricing_rule_id = Column(Integer, ForeignKey("pricing_rules.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    custom_rate = Column(Numeric(12, 2), nullable=True)


class PriceBook(Base):
    __tablename__ = "price_books"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)  # 'retail' | 'trade' | 'wholesale'
    is_default = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    rules = relationship(
        "PriceBookRule",
        order_by="PriceBookRule.sort_order",
        cascade="all, delete-orphan",
    )


class PriceBookRule(Base):
    __tablename__ = "price_book_rules"

    id = Column(Integer, primary_key=True, index=True)
    price_book_id = Column(Integer, ForeignKey("price_books.id"), nullable=False)
    pricing_rule_id = Column(Integer, ForeignKey("pricing_rules.id"), nullable=False)
    sort_order = Column(Integer, default=0)

    pricing_rule = relationship("PricingRule")


# --- Quotes ---

class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    quote_number = Column(String, unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    price_book_id = Column(Integer, ForeignKey("price_books.id"), nullable=True)
    status = Column(Enum(QuoteStatus), default=QuoteStatus.DRAFT)
    project_name = Column(String, nullable=True)
    notes = Column(Text)

    # Delivery / templating. Calculated costs come from the delivery calculator
    delivery_address = Column(Text, nullable=True)
    delivery_distance_km = Column(Numeric(10, 2), nullable=True)
    delivery_zone_id = Column(Integer, ForeignKey("delivery_zones.id"), nullable=True)
    delivery_cost = Column(Numeric(12, 2), nullable=True)
    templating_required = Column(Boolean, default=False)
    templating_distance_km = Column(Numeric(10, 2), nullable=True)
    templating_cost = Column(Numeric(12, 2), nullable=True)

    # Manual overrides win over calculated values when set
    override_subtotal = Column(Numeric(12, 2), nullable=True)
    override_total = Column(Numeric(12, 2), nullable=True)
    override_delivery_cost = Column(Numeric(12, 2), nullable=True)
    override_templating_cost = Column(Numeric(12, 2), nullable=True)
    override_reason = Column(Text, nullable=True)

    # Cached CalculationResult, never read back by the engine
    calculation_breakdown = Column(JSON, nullable=True)
    calculated_total = Column(Numeric(12, 2), nullable=True)
    calculated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="quotes")
    price_book = relationship("PriceBook")
    delivery_zone = relationship("DeliveryZone")
    rooms = relationship(
        "QuoteRoom",
        back_populates="quote",
        order_by="QuoteRoom.sort_order",
        cascade="all, delete-orphan",
    )
    versions = relationship(
        "QuoteVersion",
        back_populates="quote",
        order_by="QuoteVersion.version_number",
        cascade="all, delete-orphan",
    )
    slab_optimizations = relationship("SlabOptimization", cascade="all, delete-orphan")


class QuoteRoom(Base):
    __tablename__ = "quote_rooms"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    name = Column(String, nullable=False, default="Kitchen")
    sort_order = Column(Integer, default=0)

    quote = relationship("Quote", back_populates="rooms")
    pieces = relationship(
        "QuotePiece",
        back_populates="room",
        order_by="QuotePiece.sort_order",
        cascade="all, delete-orphan",
    )


class QuotePiece(Base):
    __tablename__ = "quote_pieces"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("quote_rooms.id"), nullable=False)
    name = Column(String, nullable=False, default="Benchtop")
    sort_order = Column(Integer, default=0)

    # Dimensions (mm)
    length_mm = Column(Integer, nullable=False)
    width_mm = Column(Integer, nullable=False)
    thickness_mm = Column(Integer, nullable=False, default=20)

    material_id = Column(Integer, ForeignKey("materials.id"), nullable=True)

    # Edge profile per side, null means unfinished
    edge_top = Column(Integer, ForeignKey("edge_types.id"), nullable=True)
    edge_bottom = Column(Integer, ForeignKey("edge_types.id"), nullable=True)
    edge_left = Column(Integer, ForeignKey("edge_types.id"), nullable=True)
    edge_right = Column(Integer, ForeignKey("edge_types.id"), nullable=True)

    cutouts = Column(JSON, default=list)  # [{"cutout_type_id": 3, "quantity": 1}, ...]

    override_material_cost = Column(Numeric(12, 2), nullable=True)

    room = relationship("QuoteRoom", back_populates="pieces")
    material = relationship("Material")


class SlabOptimization(Base):
    """Slab optimizer runs. The pricing engine only reads total_slabs of the latest run."""
    __tablename__ = "slab_optimizations"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    slab_width = Column(Integer, default=3200)
    slab_height = Column(Integer, default=1600)
    kerf_width = Column(Integer, default=3)
    total_slabs = Column(Integer, nullable=False)
    waste_percent = Column(Numeric(6, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class QuoteVersion(Base):
    """Audit/rollback snapshot with the pricing breakdown embedded verbatim."""
    __tablename__ = "quote_versions"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=False)
    version_number = Column(Integer, nullable=False)
    change_type = Column(String, default="RECALCULATED")  # 'CREATED' | 'UPDATED' | 'RECALCULATED' | ...
    change_summary = Column(Text, nullable=True)
    changed_by = Column(String, nullable=True)
    snapshot_json = Column(JSON, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=True)
    total = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    quote = relationship("Quote", back_populates="versions")
