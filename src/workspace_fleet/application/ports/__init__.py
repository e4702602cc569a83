"""Ports describing the outbound collaborators of the workspace fleet."""
