"""Plugin index, manifest validation and archive handling for kubectl plugins."""

__version__ = "0.3.0"