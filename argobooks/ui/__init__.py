"""Qt user interface layer."""
