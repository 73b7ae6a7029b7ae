"""Hybrid Gateway Operator: Gateway API routes to Kong configuration resources."""

__version__ = "0.1.0"
