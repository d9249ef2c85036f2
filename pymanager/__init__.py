"""pymanager — interpreter and installer resolution for interactive shells."""

__version__ = "0.1.0"
