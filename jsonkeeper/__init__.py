"""Fetch JSON from remote endpoints and keep JSON documents on local disk."""

__version__ = "0.1.0"
