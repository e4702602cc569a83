"""Runtime wiring: settings aggregation and service construction."""
