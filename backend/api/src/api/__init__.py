"""Storefront payment REST API (FastAPI)."""
