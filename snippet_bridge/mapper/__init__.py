"""Mapper: semantic attribute keys/values -> canonical target-schema keys/display values.

- mapping_default.json: property table, value tables and strategy rules
- engine.py: immutable tables with lookup and value normalization
"""
