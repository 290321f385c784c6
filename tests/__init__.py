"""Test suite for the Nudgeable backend.

Usage:
    python -m unittest discover -s tests -t . -v
    pytest
"""
import os

# Keep the module-level engine off PostgreSQL while tests import the package
os.environ.setdefault("DATABASE_URL", "sqlite://")
