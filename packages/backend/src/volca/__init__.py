"""Volca — authentication, session and project-authorization core.

Issues and validates the credentials that prove who a caller is
(access, refresh, password-reset and email-verification tokens) and
decides whether that caller may act on a given project.
"""

__version__ = "0.1.0"
