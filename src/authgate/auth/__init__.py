"""
authgate.auth

Authentication core.

Responsibilities:
- Dispatch policy, local and federated verifiers, identity normalization.
- The authentication coordinator used by the service layer.
- Session token helpers and FastAPI auth dependencies.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package imports FastAPI except `deps`; the core can be used
# from workers or CLIs with only an AuthConfig and the two store adapters.
