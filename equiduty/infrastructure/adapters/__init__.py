"""Adapters connecting application ports to external systems."""
