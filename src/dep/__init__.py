"""Dependency atoms, resolution and its projections."""
