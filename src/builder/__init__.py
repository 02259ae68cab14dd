"""Collection build stage.

This package packs materialized sources, converts them to canonical
documents, and publishes the output tree consumed by the catalog.
"""
