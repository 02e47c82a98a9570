"""Users feature; only the table is defined so far."""
