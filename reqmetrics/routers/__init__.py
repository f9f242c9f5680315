"""API router package."""
