"""Adapters implementing the collector's ports."""
