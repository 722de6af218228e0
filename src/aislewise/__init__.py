"""Aislewise: store layouts, catalog items and shopping lists."""

__version__ = "0.1.0"
