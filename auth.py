"""
Credential issuance and the two request gates.

Credentials are HS256 JWTs carrying the caller's email and expiring 365 days
after issuance. There is no revocation list: a leaked credential stays valid
until it expires.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Header, Request

from config import Settings, get_settings
from errors import Forbidden, Unauthenticated
from repositories import UserRepository, get_users

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    email: str
    claims: Dict[str, Any] = field(default_factory=dict)


def issue_token(claims: Dict[str, Any], settings: Settings, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + timedelta(days=settings.access_token_ttl_days),
    }
    return jwt.encode(payload, settings.access_token_secret, algorithm=settings.access_token_algorithm)


def verify_token(token: str, settings: Settings) -> Identity:
    try:
        claims = jwt.decode(
            token,
            settings.access_token_secret,
            algorithms=[settings.access_token_algorithm],
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired credential")
        raise Unauthenticated("Credential expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid credential: %s", e)
        raise Unauthenticated("Invalid credential")

    email = claims.get("email")
    if not isinstance(email, str) or not email:
        raise Unauthenticated("Credential carries no identity")
    return Identity(email=email, claims=claims)


# ---------------------- Gates ----------------------

def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def authenticate(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> Identity:
    if not authorization or not authorization.strip():
        raise Unauthenticated("Unauthorized access")
    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token.split(" ", 1)[1].strip()
    return verify_token(token, settings)


def require_admin(
    identity: Identity = Depends(authenticate),
    users: UserRepository = Depends(get_users),
) -> dict:
    user = users.find_one(identity.email)
    if user is None:
        logger.warning("Admin gate: no account for %s", identity.email)
        raise Forbidden("Forbidden access")
    if user.get("user_role") != "admin":
        logger.warning("Admin gate: %s is not an admin", identity.email)
        raise Forbidden("Forbidden access")
    return user
