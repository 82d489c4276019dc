"""githooks: a single dispatcher for every git hook."""

__version__ = "0.1.0"
