"""Application services shared by the view-models."""
