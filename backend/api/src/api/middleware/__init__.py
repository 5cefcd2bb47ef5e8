"""ASGI middleware for the storefront API."""
