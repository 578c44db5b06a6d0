"""Persistence adapters.

The store depends on ``AbstractStorage`` only, so the flat JSON file used by
default can be swapped for another backend without touching the store.
"""
