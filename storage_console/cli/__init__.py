"""Operator command line client for the Storage Console API."""

__version__ = "0.1.0"
