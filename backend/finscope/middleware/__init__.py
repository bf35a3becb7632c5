"""FinScope HTTP middleware."""
