"""Core workflow logic for the destination catalogue."""
