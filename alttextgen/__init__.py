"""Multi-provider AI alt text gateway."""

__version__ = "0.1.0"
