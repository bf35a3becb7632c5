"""FinScope analysis and planning engines."""
