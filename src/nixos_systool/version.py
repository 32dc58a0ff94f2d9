"""Single source of truth for the package version."""

__version__: str = "1.8.0"
