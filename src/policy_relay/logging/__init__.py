"""Loguru logging setup."""
