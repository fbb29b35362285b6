"""Dashboard HTTP API for the dropshipping business simulation."""

__version__ = "0.1.0"
