"""Ports: interfaces the collector offers and the backend it consumes."""
