"""Commit, bug-fix and contributor analytics for GitHub repositories."""

__version__ = "0.1.0"
