"""Storefront domain binding, DNS verification and public tenant resolution."""

__version__ = "0.1.0"
