"""Authentication and authorization.

Learn: One authentication path — users log in with email (or username)
and password and receive a stateless JWT. Every protected route resolves
that JWT to a typed CurrentIdentity via dependencies.require_identity.

Tokens are not revocable: validity is signature + expiry, nothing else.
"""
