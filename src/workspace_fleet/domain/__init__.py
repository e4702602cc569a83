"""Domain model for compute units, execution results and best-effort outcomes."""
