"""
authgate.observability

Observability package.

Responsibilities:
- structlog JSON logging with credential-bearing keys stripped.
- Per-request log context (request id, path, peer).
"""

# Package marker.
