"""PropWatch services."""
