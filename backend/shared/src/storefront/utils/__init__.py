"""Utility helpers shared by the storefront services."""
