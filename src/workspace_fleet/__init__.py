"""Workspace fleet orchestration: lifecycle management and execution routing."""
