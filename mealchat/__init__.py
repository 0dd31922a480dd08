"""Conversational meal logging engine."""

__version__ = "0.1.0"
