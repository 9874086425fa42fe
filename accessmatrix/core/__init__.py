"""Core access-control logic: roles, catalog, resolution and services."""
