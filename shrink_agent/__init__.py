"""Share shrink maintenance workflow."""

__version__ = "0.1.0"
