"""Slack OAuth and scheduled message relay."""

__version__ = "0.1.0"
