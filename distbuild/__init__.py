"""distbuild — build and install orchestrator for application distributions."""

__version__ = "0.1.0"
