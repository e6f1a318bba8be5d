"""Storefront backend: catalog, cart, checkout and sales analytics."""

__version__ = "0.1.0"
