"""Shared helpers for the reqmetrics package."""
