"""consolewarden — console supervisor for a dedicated server process."""

__version__ = "0.1.0"
