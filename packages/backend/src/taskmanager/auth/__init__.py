"""Authentication and authorization.

Users register with email/password and log in for a signed JWT. Every
protected call goes through the AuthGate, which verifies the token and
resolves the email in it against the users table. Resource access is
then checked by the ownership policy.
"""
