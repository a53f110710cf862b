"""Inkwell blog platform: authentication and session API."""

__version__ = "0.1.0"
