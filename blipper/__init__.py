"""Edit dated blip posts and images stored in a GitHub repository."""

__version__ = "0.1.0"
