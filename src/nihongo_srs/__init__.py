"""Spaced-repetition and progression engine for Japanese character study."""

__version__ = "0.1.0"
