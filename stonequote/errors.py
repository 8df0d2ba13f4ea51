"""
Pricing engine error taxonomy.

ValidationError and NotFoundError abort a calculation. DataGapWarning is never
raised by the engine: it is collected on the result (and logged) so the caller
can surface the gap while still getting a complete price.
"""


class PricingError(Exception):
    """Base class for errors that abort a calculation."""


class ValidationError(PricingError):
    """Malformed identifiers, inconsistent rules, impossible piece dimensions."""


class NotFoundError(PricingError):
    """Quote or referenced price book missing."""


class DataGapWarning(UserWarning):
    """
    A missing lookup the engine priced around (zero rate, per-area fallback).

    code: 'missing_material' | 'missing_material_rate' | 'missing_edge_type' |
          'missing_cutout_type' | 'no_slab_count' | 'missing_slab_price'
    """

    def __init__(self, code: str, message: str, entity_id=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.entity_id = entity_id

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "entity_id": self.entity_id}

    def __eq__(self, other):
        if not isinstance(other, DataGapWarning):
            return NotImplemented
        return (self.code, self.message, self.entity_id) == (other.code, other.message, other.entity_id)

    def __hash__(self):
        return hash((self.code, self.message, self.entity_id))
