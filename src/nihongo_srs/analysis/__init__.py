"""Derived learning statistics."""
