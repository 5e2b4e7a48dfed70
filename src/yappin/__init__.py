"""Yappin' social-graph and content-graph core."""

__version__ = "0.1.0"
