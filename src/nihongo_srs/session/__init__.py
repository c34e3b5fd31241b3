"""Study session orchestration."""
