"""Upstream adapters: one client per third-party API, no caching, no shared state."""
