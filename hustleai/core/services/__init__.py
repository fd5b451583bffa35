"""Application services composed from the infrastructure adapters."""
