"""
authgate.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories that implement
  the credential store, replay store and audit sink boundaries.
"""

# Package marker.
