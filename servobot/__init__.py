"""Chat-controlled servo bot."""

__version__ = "0.1.0"
