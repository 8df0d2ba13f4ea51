"""
Quote pricing: catalog snapshot, rule resolution and discount passes.

The orchestration lives in stonequote.pricing_engine.
"""
