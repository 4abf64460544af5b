"""Subway network service: lines, stations, sections and member favorites."""

__version__ = "0.1.0"
