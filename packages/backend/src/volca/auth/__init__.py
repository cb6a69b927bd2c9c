"""Authentication and authorization.

Two layers:
1. Users → email/password → short-lived JWT access token + opaque
   refresh token (cookie). The access token resolves to a CurrentIdentity.
2. Project Access Guard → the identity may act on the projects the
   request references, optionally as their admin.
"""
