"""
authgate.stores

Store adapters consumed by the authentication core.

Responsibilities:
- Define the credential store and replay-detection store boundaries.
- Provide in-memory implementations for tests and local development.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# SQL-backed implementations live in `authgate.db.repositories`.
