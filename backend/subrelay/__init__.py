"""Subtitle Relay - resilient batch subtitle translation through LLM backends."""

__version__ = "0.1.0"
