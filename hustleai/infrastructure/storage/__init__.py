"""Persistence of backend health status."""
