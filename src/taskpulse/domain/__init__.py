"""Entity types and the repeat-interval codec."""
