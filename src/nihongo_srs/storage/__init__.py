"""Key-value persistence and typed record access."""
