"""Document, diff queue and agent tool services."""
