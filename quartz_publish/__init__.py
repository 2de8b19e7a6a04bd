"""Publish markdown notes from a local vault to a Quartz site repository."""

__version__ = "0.1.0"
