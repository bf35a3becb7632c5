"""FinScope — personal-finance research aggregator service tier."""

__version__ = "1.0.0"
