"""Configuration for the bibliography client."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
