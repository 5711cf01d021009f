"""Geometry helpers shared across stages (planar rings, local projection)."""
