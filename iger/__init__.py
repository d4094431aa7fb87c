"""iGer - fish marketplace backend: freshness scanner, chat assistant, geocoding."""

__version__ = "0.1.0"
