"""Command line client for the Schema Manager API."""

__version__ = "0.1.0"
