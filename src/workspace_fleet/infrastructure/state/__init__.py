"""In-process state stores."""
