"""Minimal CRUD HTTP service for a bounded collection of users."""

__version__ = "0.1.0"
