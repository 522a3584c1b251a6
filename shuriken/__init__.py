"""Shuriken Redirects: root-level redirect rules with click tracking."""

__version__ = "1.1.0"
