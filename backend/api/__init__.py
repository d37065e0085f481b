"""
SmartBin API package.

Provides the FastAPI application for RFID registration, verification and the points ledger.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
