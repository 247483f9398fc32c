"""Availability and booking scheduling engine for tutor marketplaces."""

__version__ = "1.0.0"
