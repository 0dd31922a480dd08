"""Ports implemented by infrastructure adapters."""
