"""Test suite for the health policy relay."""
