"""Composition root, configuration and host scheduling for the client core."""
