"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import Category, Settings

__all__ = [
    "Category",
    "ConfigLocator",
    "ConfigRepository",
    "Settings",
]
