"""Search, sort and pagination helpers for table pages."""
