"""Sync orchestration: settings, cancellation and the end-to-end service."""
