"""flowalign - align NiFi process groups on the canvas in a grid manner."""

__version__ = "1.0.0"
