"""Contact discovery and extraction for dealership websites."""

__version__ = "1.0.0"
