"""Resolve Brazilian postal codes by racing independent lookup services."""

__version__ = "1.0.0"
