"""MECM health snapshot collector."""

__version__ = "1.0.0"
