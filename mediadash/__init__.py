"""Log aggregation backend for a self-hosted media services dashboard."""

__version__ = "0.1.0"
