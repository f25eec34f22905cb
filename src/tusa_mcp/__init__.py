"""Badalona bus stop directory and real-time arrivals, served over MCP."""

__version__ = "0.1.0"
