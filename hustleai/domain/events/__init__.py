"""Domain Event definitions.

Represents significant occurrences in the client (calls issued, deferred,
retried, replaced by fallbacks) that observers may react to.
"""
