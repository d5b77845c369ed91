"""Carrier rate aggregation and order booking backend."""
__version__ = "0.1.0"
