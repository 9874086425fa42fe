"""Household access matrix.

Role-based feature and setting access for households, with per-household
overrides, kill switches and per-member permission booleans.
"""

__version__ = "0.1.0"
