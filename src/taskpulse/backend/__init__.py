"""SQLite authoritative store and its async client adapters."""
