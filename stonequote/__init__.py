"""Stone benchtop quote pricing."""

__version__ = "1.0.0"
