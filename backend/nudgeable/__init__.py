"""Nudgeable - prompt-engineering practice platform backend."""

__version__ = "0.1.0"
