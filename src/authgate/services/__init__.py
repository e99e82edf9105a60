"""
authgate.services

Service layer.

Responsibilities:
- Own the transaction around one login attempt (audit + replay writes).
- Turn an authenticated identity into a session token.
"""

# Package marker.
