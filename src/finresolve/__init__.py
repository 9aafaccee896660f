"""FinResolve: financial profile state with debounced remote sync."""

__version__ = "0.1.0"
