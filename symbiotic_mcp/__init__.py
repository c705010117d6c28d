"""Symbiotic MCP: security scanning tools backed by the Symbiotic CLI."""

__version__ = "1.0.0"
