"""Scheduling, prioritisation, reward and streak rules."""
