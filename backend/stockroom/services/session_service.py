# Overview: Bearer sessions for the local identity provider; issue, check, revoke, prune.

"""
Session Tokens

The client holds a random 64-hex-char token; the ``session_tokens`` table
holds only its SHA-256 digest. A session dies when any of these happens:

- its absolute lifetime (SESSION_ABSOLUTE_HOURS) runs out
- it sits unused for longer than SESSION_IDLE_HOURS
- its account is deactivated
- it is revoked on sign-out
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app, has_app_context

from ..extensions import db
from ..models import SessionToken, User
from stockroom.time_utils import utcnow


DEFAULT_ABSOLUTE_HOURS = 24
DEFAULT_IDLE_HOURS = 2


def _hours(key: str, default: int) -> timedelta:
    value = current_app.config.get(key, default) if has_app_context() else default
    return timedelta(hours=value)


def absolute_timeout() -> timedelta:
    return _hours("SESSION_ABSOLUTE_HOURS", DEFAULT_ABSOLUTE_HOURS)


def idle_timeout() -> timedelta:
    return _hours("SESSION_IDLE_HOURS", DEFAULT_IDLE_HOURS)


def generate_token() -> str:
    """32 random bytes, hex encoded. Only the client ever sees this value."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # High-entropy input: a plain digest is enough, no salt or stretching
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _revoke(session: SessionToken, reason: str, when=None) -> None:
    session.is_revoked = True
    session.revoked_at = when or utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for ``user_id``.

    Returns (row, plaintext_token); the plaintext is not recoverable later.
    """
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    issued = utcnow()
    row = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + absolute_timeout(),
        is_revoked=False,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    db.session.add(row)
    db.session.commit()
    return row, token


def validate_session(token: str | None) -> User | None:
    """
    The account behind ``token``, or None if the session is dead.

    Idle sessions and sessions of deactivated accounts are revoked on the
    way out. A live session has its ``last_used_at`` bumped.
    """
    if not token:
        return None

    row = _live_session(token)
    if row is None:
        return None

    now = utcnow()
    if row.expires_at < now:
        return None
    if now - row.last_used_at > idle_timeout():
        _revoke(row, "Idle timeout", now)
        return None

    account = row.user
    if account is None or not account.is_active:
        _revoke(row, "User account deactivated", now)
        return None

    row.last_used_at = now
    db.session.commit()
    return account


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Kill the session for ``token``. False if it was not live."""
    row = _live_session(token)
    if row is None:
        return False
    _revoke(row, reason)
    return True


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """Delete dead sessions created more than ``retention_days`` ago; returns the count."""
    now = utcnow()
    dead = db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True))
    deleted = (
        db.session.query(SessionToken)
        .filter(dead, SessionToken.created_at < now - timedelta(days=retention_days))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
