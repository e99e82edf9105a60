"""
authgate

Login dispatch service: each username is routed to either the SAML identity
provider or the local credential store, and both paths yield the same
`AuthenticatedIdentity`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
