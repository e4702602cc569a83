"""Use cases orchestrating units, readiness, singleton policy and execution."""
