"""Machine-control API adapter."""
