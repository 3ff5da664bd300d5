"""
API Services - request-scoped helpers that belong to the HTTP layer.

The domain services live in the intake package; only concerns the caller
owns (such as the admin login lockout) are kept here.
"""

from .login_guard import LoginAttemptGuard, LoginLockedError

__all__ = ["LoginAttemptGuard", "LoginLockedError"]
