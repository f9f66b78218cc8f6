"""Shared text utilities: fingerprinting and similarity scoring."""
