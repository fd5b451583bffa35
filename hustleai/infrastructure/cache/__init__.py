"""Response caching for idempotent backend reads."""
