"""ownergate: code owner approval gate for pull requests."""

__version__ = "0.1.0"
