# src/yappin/models/__init__.py
"""SQLAlchemy models for the Yappin' SQL store backend."""

from .store_node import StoreNode

__all__ = ["StoreNode"]
