"""Helpers for OpenStack clouds: name lookups, object storage and small utilities."""

__version__ = "0.1.0"