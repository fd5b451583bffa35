"""Infrastructure adapters: transport, resilience, caching, fallback, storage, config, CLI."""
