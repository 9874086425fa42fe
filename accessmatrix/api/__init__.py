"""HTTP API for the household access matrix."""
