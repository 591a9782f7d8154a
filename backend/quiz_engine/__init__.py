"""Timed quiz session engine: start, resume, answer, navigate, finalize and sweep."""

__version__ = "1.0.0"
