"""Core layer: the client facade and the health monitor."""
