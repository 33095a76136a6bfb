"""Lazystage - static file server with lazily derived assets."""

__version__ = "0.1.0"
