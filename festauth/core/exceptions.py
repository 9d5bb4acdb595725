"""Error taxonomy for session and account operations.

Services raise these internally. The public service boundary
(``SessionManager``, ``PasswordResetManager``, ``UserAdminService``) turns
them into an ``ActionResult`` so nothing in this package escapes as an
unhandled exception. ``code`` is stable and machine-readable; ``message``
is safe to show in a login form.
"""

from __future__ import annotations

from fastapi import status

UNEXPECTED_ERROR_CODE = "unexpected_error"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class AuthError(Exception):
    """Base class for expected authentication and account failures."""

    code: str = "auth_error"
    message: str = "Authentication failed"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None):
        self.message = message or type(self).message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    """Unknown identifier, wrong password or inactive account.

    The three causes share one message on purpose.
    """

    code = "invalid_credentials"
    message = "Username or password is incorrect"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccountLocked(AuthError):
    code = "account_locked"
    message = "Too many failed login attempts. The account is temporarily locked, try again later"
    status_code = status.HTTP_423_LOCKED


class InvalidToken(AuthError):
    """Bad signature, tampered payload or expired token (indistinguishable)."""

    code = "invalid_token"
    message = "Session is invalid or has expired"
    status_code = status.HTTP_401_UNAUTHORIZED


class Unauthorized(AuthError):
    code = "unauthorized"
    message = "Admin access required"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AuthError):
    code = "not_found"
    message = "User not found"
    status_code = status.HTTP_404_NOT_FOUND


class NoTemporarySession(AuthError):
    code = "no_temporary_session"
    message = "There is no temporary user session to leave"
    status_code = status.HTTP_409_CONFLICT


class AdminNoLongerValid(AuthError):
    code = "admin_no_longer_valid"
    message = "The original admin account is no longer an active admin"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidOrExpired(AuthError):
    code = "invalid_or_expired"
    message = "Invalid or expired reset link"
    status_code = status.HTTP_400_BAD_REQUEST


class WeakPassword(AuthError):
    code = "weak_password"
    message = "Password must be at least 8 characters long"
    status_code = 422  # Unprocessable Content


class UserAlreadyExists(AuthError):
    code = "user_already_exists"
    message = "Email or username already taken"
    status_code = status.HTTP_409_CONFLICT


class CannotDemoteSelf(AuthError):
    code = "cannot_demote_self"
    message = "You cannot remove your own admin role"
    status_code = status.HTTP_400_BAD_REQUEST


_ALL_ERRORS: tuple[type[AuthError], ...] = (
    InvalidCredentials,
    AccountLocked,
    InvalidToken,
    Unauthorized,
    NotFound,
    NoTemporarySession,
    AdminNoLongerValid,
    InvalidOrExpired,
    WeakPassword,
    UserAlreadyExists,
    CannotDemoteSelf,
)

STATUS_BY_CODE: dict[str, int] = {cls.code: cls.status_code for cls in _ALL_ERRORS}
STATUS_BY_CODE[UNEXPECTED_ERROR_CODE] = status.HTTP_500_INTERNAL_SERVER_ERROR
