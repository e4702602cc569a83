"""Adapters that implement application ports against real services."""
