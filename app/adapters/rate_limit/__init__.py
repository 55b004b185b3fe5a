"""Rate limiting adapters.

This package provides the counting strategies (fixed window, weighted sliding
window) behind a small abstraction so the API layer can switch algorithms
through configuration. Counters themselves live in a counter store.
"""
