"""GPU collector core: entity topology discovery and watch provisioning."""

__version__ = "0.1.0"
