"""
authgate.db.repositories

Repository implementations of the store protocols.

Responsibilities:
- IdentityRepo: credential store (read) plus provisioning helpers.
- ReplayRepo: replay-detection store.
- AuditRepo: SQL audit sink.
"""

# Package marker.
