"""Storage adapters (PostgreSQL, in-memory)."""
