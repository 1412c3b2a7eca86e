"""FastAPI relay application."""
