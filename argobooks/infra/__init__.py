"""Low-level HTTP helpers."""
