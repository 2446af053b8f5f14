"""Developer Loop script catalog and execution service."""

__version__ = "0.1.0"
