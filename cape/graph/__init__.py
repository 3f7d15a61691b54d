"""Privilege graph: models, store, assembly and path queries."""
