"""Transport adapters for the HustleAI backend."""
