# Overview: Service-layer operations for users and passwords.

"""
Authentication Service

Passwords are hashed with bcrypt. Accounts carry one role: admin (may
reverse sales, restock and change settings) or seller.
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_SELLER


MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash with bcrypt, cost factor 12. Rejects passwords shorter than 8 characters."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(
    username: str,
    password: str,
    *,
    role: str = ROLE_SELLER,
    full_name: str | None = None,
) -> User:
    """
    Create a staff account.

    Raises ValidationError for a taken username, an unknown role or a
    weak password.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ValidationError("Username already exists")

    user = User(
        username=username,
        full_name=(full_name or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("Created %s account %s", role, username)
    return user


def authenticate(username: str, password: str) -> User | None:
    """Return the active user matching the credentials, None otherwise."""
    user = db.session.query(User).filter(
        User.username == (username or "").strip(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None
    if verify_password(password, user.password_hash):
        return user
    return None
