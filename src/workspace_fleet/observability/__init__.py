"""Logging and tracing setup."""
