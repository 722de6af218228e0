"""Utility helpers for Aislewise."""
