"""Arden CLI - detect AI coding agents and ship their usage to ardenstats.com."""

__version__ = "0.1.0"
