"""Release packaging orchestrator for the ap binaries."""

__version__ = "0.1.0"
