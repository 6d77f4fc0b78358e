"""Storage Console: object storage management console backend."""

__version__ = "0.1.0"
