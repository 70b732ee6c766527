# Overview: Service-layer operations for accounts; password hashing and credential checks.

"""
Account Service

Email + password accounts for the local identity provider.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- Emails are normalized (trimmed, lower-cased) before lookup and storage
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from stockroom.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class EmailValidationError(Exception):
    """Raised when an email address is malformed."""
    pass


class EmailInUseError(ValueError):
    """Raised when an account already exists for the email."""
    pass


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> None:
    if not _EMAIL_RE.match(email):
        raise EmailValidationError("Email address is malformed")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def find_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=normalize_email(email)).first()


def create_user(email: str, password: str) -> User:
    """
    Create new account with bcrypt password hashing.

    Raises:
        EmailValidationError: If the email is malformed
        PasswordValidationError: If password doesn't meet requirements
        EmailInUseError: If an account already exists for the email
    """
    email = normalize_email(email)
    validate_email(email)

    if find_user_by_email(email):
        raise EmailInUseError("An account already exists for this email")

    # Hash password with bcrypt (validates strength automatically)
    password_hash = hash_password(password)

    user = User(email=email, password_hash=password_hash)

    db.session.add(user)
    db.session.commit()
    return user


def check_credentials(email: str, password: str) -> tuple[User | None, bool]:
    """
    Look up an active account and check its password.

    Returns (user, password_ok). user is None when no active account exists
    for the email. On success last_login_at is stamped.
    """
    user = (
        db.session.query(User)
        .filter(User.email == normalize_email(email), User.is_active.is_(True))
        .first()
    )
    if not user:
        return None, False

    if not verify_password(password or "", user.password_hash):
        return user, False

    user.last_login_at = utcnow()
    db.session.commit()
    return user, True
