"""Schema Manager - runtime schema mutation service for the contracts dashboard."""

__version__ = "0.1.0"
