# auth.py  - password sign-in with opaque session tokens
import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

import models

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _open_session(db: Session, user: models.Profile) -> models.AuthSession:
    row = models.AuthSession(token=secrets.token_hex(32), user_id=user.id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def sign_up(db: Session, email: str, password: str, full_name: Optional[str] = None) -> models.AuthSession:
    email = _normalize_email(email)
    if "@" not in email:
        raise AuthError("Please enter a valid email address")
    if db.query(models.Profile).filter(models.Profile.email == email).first():
        raise AuthError("An account with this email already exists")

    user = models.Profile(
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=generate_password_hash(password),
    )
    db.add(user)
    db.flush()
    logger.info("Created profile %s", user.id)
    return _open_session(db, user)


def sign_in(db: Session, email: str, password: str) -> models.AuthSession:
    user = db.query(models.Profile).filter(models.Profile.email == _normalize_email(email)).first()
    if not user or not check_password_hash(user.password_hash, password):
        raise AuthError("Invalid email or password")
    return _open_session(db, user)


def sign_out(db: Session, token: str) -> None:
    row = db.query(models.AuthSession).filter(models.AuthSession.token == token).first()
    if row:
        db.delete(row)
        db.commit()


def user_for_token(db: Session, token: Optional[str]) -> Optional[models.Profile]:
    if not token:
        return None
    row = db.query(models.AuthSession).filter(models.AuthSession.token == token).first()
    return row.user if row else None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pulls the token out of an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
