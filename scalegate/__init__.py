"""Request routing, request counting and scaling helpers for a scale-to-zero HTTP interceptor."""

__version__ = "0.1.0"