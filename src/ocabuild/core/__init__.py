"""Shared error types, models and run logging."""
