"""Sweet shop catalog, inventory and access-control service."""

from .api import create_app, main

__all__ = ["create_app", "main"]
