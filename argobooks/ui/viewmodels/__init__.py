"""Page and modal view-models."""
