"""Utilities.

- find: Reference resolution against wiki data collections
- sugar: List, mapping and string helpers
"""
