"""Domain Interfaces (Ports).

Abstract contracts for the adapters the client depends on: the transport,
the response cache and health status persistence.
"""
