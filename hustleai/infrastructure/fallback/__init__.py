"""Local fallbacks used when the backend cannot answer."""
