"""Destination catalogue change-request workflow engine."""

__version__ = "0.1.0"
