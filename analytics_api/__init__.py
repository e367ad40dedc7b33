"""Invisible Analytics - session/event collector with cached, LLM-summarized reports."""

__version__ = "0.1.0"
