"""Account service orchestrating validation, hashing, and persistence."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from .account import AccountSummary
from .contracts import Credentials, RegistrationInput
from .errors import AuthenticationError, ConflictError, StoreUnavailableError, ValidationError
from ..metrics import record_attempt
from ..repository import AccountRecord, AccountRepository, DuplicateAccountError
from ..security.passwords import generate_salt, hash_password, verify_password

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
UPPERCASE_PATTERN = re.compile(r"[A-Z]")
DIGIT_PATTERN = re.compile(r"[0-9]")
MIN_PASSWORD_LENGTH = 8
NUL = "\x00"


def _require_credentials(email: str | None, password: str | None) -> tuple[str, str]:
    """Check presence and email shape shared by registration and login."""
    if not email or not password:
        raise ValidationError("email and password are required")
    # Postgres text columns cannot hold NUL bytes.
    if NUL in email or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("invalid email address")
    if NUL in password:
        raise ValidationError("password must not contain NUL characters")
    return email, password


def _check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not UPPERCASE_PATTERN.search(password) or not DIGIT_PATTERN.search(password):
        raise ValidationError("password must contain an uppercase letter and a digit")


class AccountService:
    """Registration and login workflows backed by the account store."""

    def __init__(self, repository: AccountRepository) -> None:
        """Store the repository used for every read and insert."""
        self._repository = repository

    def register(self, payload: RegistrationInput) -> str:
        """Create an account and return the identifier assigned by the store.

        The lookup before hashing only short-circuits the common duplicate case;
        the unique constraint on ``accounts.email`` decides concurrent races.
        """
        try:
            email, password = _require_credentials(payload.email, payload.password)
            _check_password_strength(password)
            if payload.display_name is not None and NUL in payload.display_name:
                raise ValidationError("username must not contain NUL characters")
        except ValidationError:
            record_attempt("register", "invalid")
            raise

        try:
            if self._repository.find_by_email(email) is not None:
                logger.info("registration rejected, email already registered: %s", email)
                record_attempt("register", "conflict")
                raise ConflictError()

            salt, password_hash = hash_password(password)
            account_id = self._repository.insert(
                email=email,
                display_name=payload.display_name,
                password_salt=salt,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc),
            )
        except DuplicateAccountError as exc:
            logger.info("registration lost insert race for %s", email)
            record_attempt("register", "conflict")
            raise ConflictError() from exc
        except StoreUnavailableError:
            logger.exception("account store unavailable during registration")
            record_attempt("register", "unavailable")
            raise

        logger.info("registered account %s for %s", account_id, email)
        record_attempt("register", "success")
        return account_id

    def login(self, credentials: Credentials) -> AccountSummary:
        """Verify an email/password pair and return the matching account summary.

        Unknown emails and wrong passwords raise the same ``AuthenticationError``.
        """
        try:
            email, password = _require_credentials(credentials.email, credentials.password)
        except ValidationError:
            record_attempt("login", "invalid")
            raise

        try:
            account = self._repository.find_by_email(email)
        except StoreUnavailableError:
            logger.exception("account store unavailable during login")
            record_attempt("login", "unavailable")
            raise

        if account is None:
            # Burn one derivation so unknown emails cost the same as bad passwords.
            verify_password(password, generate_salt(), "")
            matched = False
        else:
            matched = verify_password(password, account.password_salt, account.password_hash)

        if not matched:
            logger.warning("login rejected for %s", email)
            record_attempt("login", "rejected")
            raise AuthenticationError()

        logger.info("login succeeded for account %s", account.account_id)
        record_attempt("login", "success")
        return account.summary()

    def list_accounts(self) -> list[AccountRecord]:
        """Return all accounts without password material."""
        return self._repository.list_all()
