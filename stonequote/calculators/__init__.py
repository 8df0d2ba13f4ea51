"""
Category calculators.

Pure Decimal math. Given a quote snapshot, the catalog and the winning rate
overrides, each calculator prices one category (materials, edges, cutouts,
services) and returns its line items.
"""
