"""Webhook API."""

from postfinance_gateway.api.app import create_app

__all__ = ["create_app"]
