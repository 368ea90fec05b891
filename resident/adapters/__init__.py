"""Adapter package for external I/O implementations.

Purpose:
    Collect concrete implementations for domain ports (HTTP executor,
    notification REST routes, credential persistence).

Dependencies:
    Individual submodules depend on ``requests``, filesystem APIs, and domain
    protocol definitions.

Call context:
    Imported by the composition root (``resident/app/main.py``) for runtime
    wiring and by tests for transport-level behavior verification.
"""
