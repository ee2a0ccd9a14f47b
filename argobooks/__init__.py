"""ArgoBooks: bookkeeping view-models and services for a Qt desktop client."""

__version__ = "0.1.0"
