"""Logging and small shared helpers."""
