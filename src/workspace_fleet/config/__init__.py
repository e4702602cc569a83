"""Environment-driven settings for the workspace fleet."""
