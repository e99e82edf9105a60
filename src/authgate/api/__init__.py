"""
authgate.api

HTTP surface of the login service.

Responsibilities:
- App factory, lifespan (IdP config + database) and router registration.
- Request-scoped dependency wiring down to `LoginService`.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers translate `AuthFailure` values into one 401 body and nothing else.
