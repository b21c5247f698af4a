"""Interrogative Scanner: client-side state layer for the security scanner app."""

__version__ = "0.4.0"
