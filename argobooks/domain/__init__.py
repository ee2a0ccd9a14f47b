"""Business entities and the company aggregate."""
