"""Menu allergen disclosure service."""

__version__ = "1.0.0"
