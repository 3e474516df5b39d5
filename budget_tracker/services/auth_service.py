"""
Authentication Service.

Single orchestrator for the mocked auth flows: signup, login, logout
and forgot-password.  Credentials are looked up in the Entity Store and
checked through the injected :class:`CredentialVerifier`; nothing
leaves the process and nothing here is a security boundary.

Every flow walks the session state machine::

    Anonymous -> Authenticating -> Authenticated
    Authenticating -> Anonymous          (on failure)

Failures raise :class:`~budget_tracker.exceptions.BudgetTrackerError`
subclasses after recording the message on the session, so the UI can
read it from the auth slice as well as from the command result.
"""

from __future__ import annotations

from typing import Optional

from budget_tracker.auth import SessionManager
from budget_tracker.exceptions import (
    AccountNotFoundError,
    BudgetTrackerError,
    EmailExistsError,
    FieldValidationError,
    InvalidCredentialsError,
)
from budget_tracker.logger import StructuredLogger
from budget_tracker.models.auth_models import PasswordResetConfirmation
from budget_tracker.models.service_models import SignUpRequest, UserDraft
from budget_tracker.models.user import User, normalize_email
from budget_tracker.repositories.user_repository import UserRepository
from budget_tracker.services.base_service import BaseService
from budget_tracker.services.credentials import CredentialVerifier
from budget_tracker.services.entity_store import EntityStore
from budget_tracker.utils.validation import (
    validate_budget_limit,
    validate_email,
    validate_name,
    validate_password,
    validate_password_confirmation,
)

_INVALID_CREDENTIALS_MESSAGE: str = "Incorrect email or password."


class AuthService(BaseService):
    """Centralised mock authentication service.

    Parameters
    ----------
    session:
        Injectable holder for the auth slice.
    entity_store:
        Creates the user record on signup.
    user_repo:
        Read access for credential lookup.
    credentials:
        Digest scheme for passwords.
    min_password_length:
        Signup password policy.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        session: SessionManager,
        entity_store: EntityStore,
        user_repo: UserRepository,
        credentials: CredentialVerifier,
        logger: StructuredLogger,
        min_password_length: int = 6,
    ) -> None:
        super().__init__(logger, actor=lambda: self._current_user_id())
        self._session = session
        self._entity_store = entity_store
        self._user_repo = user_repo
        self._credentials = credentials
        self._min_password_length = min_password_length

    # ==================================================================
    # Signup
    # ==================================================================

    def sign_up(self, request: SignUpRequest) -> User:
        """Register a new account and sign it in.

        Returns the session copy of the new user (no password digest).

        Raises:
            FieldValidationError: A form field fails validation.
            EmailExistsError: The email is already registered.
        """
        self._session.begin_authentication()
        try:
            self._validate_sign_up(request)

            if self._user_repo.get_by_email(request.email) is not None:
                raise EmailExistsError(
                    "An account with this email already exists. Try signing in."
                )

            stored = self._entity_store.add_user(
                UserDraft(
                    first_name=request.first_name,
                    last_name=request.last_name,
                    email=request.email,
                    phone=request.phone,
                    budget_limit=request.budget_limit,
                ),
                password_digest=self._credentials.digest(request.password),
            )
        except BudgetTrackerError as exc:
            self._session.fail(exc.message)
            self._logger.warning(
                "Signup failed: %s",
                exc.message,
                extra={"event": "SIGNUP_FAILED", "error_kind": str(exc.kind)},
            )
            raise

        self._session.set_authenticated(stored)
        self._audit("SIGNUP", "Session", stored.id, {"email": stored.email})
        return stored.without_credentials()

    # ==================================================================
    # Login
    # ==================================================================

    def login(self, email: str, password: str) -> User:
        """Authenticate against the Entity Store.

        Unknown email, a user without a stored digest and a wrong
        password all fail the same way.

        Raises:
            InvalidCredentialsError: The credentials do not match.
            FieldValidationError: *email* or *password* is not a string.
        """
        self._session.begin_authentication()
        email = self._text_field("email", email)
        password = self._text_field("password", password)
        user = self._user_repo.get_by_email(email)

        if (
            user is None
            or not user.password_hash
            or not password
            or not self._credentials.verify(password, user.password_hash)
        ):
            self._session.fail(_INVALID_CREDENTIALS_MESSAGE)
            self._logger.warning(
                "Login failed for %s.",
                normalize_email(email),
                extra={"event": "LOGIN_FAILED"},
            )
            raise InvalidCredentialsError(_INVALID_CREDENTIALS_MESSAGE)

        self._session.set_authenticated(user)
        self._audit("LOGIN", "Session", user.id, {"email": user.email})
        return user.without_credentials()

    # ==================================================================
    # Logout
    # ==================================================================

    def logout(self) -> None:
        """End the session.  Registered users stay in the Entity Store."""
        user = self._session.get_current_user()
        self._session.clear()
        self._audit(
            "LOGOUT",
            "Session",
            user.id if user is not None else "anonymous",
        )

    # ==================================================================
    # Forgot password
    # ==================================================================

    def forgot_password(self, email: str) -> PasswordResetConfirmation:
        """Mocked reset request: confirms the account exists, sends nothing.

        Raises:
            AccountNotFoundError: No user has this email.
            FieldValidationError: *email* is not a string.
        """
        self._session.begin_authentication()
        user = self._user_repo.get_by_email(self._text_field("email", email))
        if user is None:
            message = "No account found for this email. Please sign up first."
            self._session.fail(message)
            raise AccountNotFoundError(message)

        self._session.settle()
        self._logger.info(
            "Password reset requested for %s (mocked, nothing sent).",
            user.email,
            extra={"event": "PASSWORD_RESET_REQUESTED", "user_id": user.id},
        )
        return PasswordResetConfirmation(email=user.email)

    def clear_error(self) -> None:
        self._session.clear_error()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate_sign_up(self, request: SignUpRequest) -> None:
        checks = (
            ("first_name", validate_name(request.first_name, "First name")),
            ("last_name", validate_name(request.last_name, "Last name")),
            ("email", validate_email(request.email)),
            ("password", validate_password(request.password, self._min_password_length)),
            (
                "confirm_password",
                validate_password_confirmation(request.password, request.confirm_password),
            ),
            ("budget_limit", validate_budget_limit(request.budget_limit)),
        )
        for field, result in checks:
            if not result.is_valid:
                raise FieldValidationError(field, result.error_message or f"Invalid {field}.")

    def _current_user_id(self) -> Optional[str]:
        user = self._session.get_current_user()
        return user.id if user is not None else None

    def _text_field(self, field: str, value: object) -> str:
        """Return *value* as text; ``None`` reads as empty.

        Any other non-string fails the pending auth attempt.
        """
        if value is None:
            return ""
        if not isinstance(value, str):
            message = f"{field.capitalize()} must be text."
            self._session.fail(message)
            raise FieldValidationError(field, message)
        return value
