"""Declarative base shared by all catalog models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
