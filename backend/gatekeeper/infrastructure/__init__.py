"""Infrastructure Layer — database, HTTP clients, logging.

Invariants:
    - External failures never escape as raw transport exceptions
"""
