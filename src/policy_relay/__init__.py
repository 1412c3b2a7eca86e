"""Stateless relay between a health-policy mobile client and its external services."""

__version__ = "1.0.0"
