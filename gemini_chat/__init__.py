"""Gemini chat relay: model discovery, request relay and usage analytics."""

__version__ = "0.1.0"
