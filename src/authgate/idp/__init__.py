"""
authgate.idp

Identity provider boundary.

Responsibilities:
- Discover IdP signing certificate and SSO endpoint from SAML metadata.
"""

# Package marker.
