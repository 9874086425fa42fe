"""Persistence layer for household access policies."""
