"""Payment intent lifecycle and webhook reconciliation for the storefront."""

__version__ = "0.1.0"
