"""Persistence layer for the destination workflow."""
