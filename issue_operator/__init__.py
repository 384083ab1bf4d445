"""Keeps GitHub issues in sync with declarative desired-issue resources"""

__version__ = "0.1.0"
