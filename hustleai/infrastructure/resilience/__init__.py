"""Resilience mechanisms: rate limiting, retries and request coalescing."""
