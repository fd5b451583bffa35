"""Domain Layer: models, events, interfaces and errors.

Nothing in here talks to the network, the disk or the terminal.
"""
