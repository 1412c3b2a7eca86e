"""Relay route modules."""
