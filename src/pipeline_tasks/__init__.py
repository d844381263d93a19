"""Retryable pipeline tasks: metadata-store consistency checks and managed service accounts."""

__version__ = "0.1.0"
