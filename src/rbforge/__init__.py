"""rbforge - build tasks for native Ruby extensions."""

__version__ = "0.1.0"
