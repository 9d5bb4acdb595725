"""festauth — session and identity management for the festival companion app."""

__version__ = "0.1.0"
