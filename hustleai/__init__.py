"""hustleai: resilient client for the HustleAI inference backend.

Layers follow the usual split:
- domain: models, events, interfaces and the classified error taxonomy
- core: the client facade and the health monitor
- infrastructure: transport, rate limiting, caching, fallback, storage, config, CLI
"""

__version__ = "0.3.0"
