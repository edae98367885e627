# backend/app/auth.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .enums import Role
from .errors import AuthenticationError
from .models import Agency, User

log = logging.getLogger("agency_listings.auth")


@dataclass(frozen=True)
class Identity:
    """What the external identity provider vouches for."""

    external_auth_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Principal:
    user_id: int
    external_auth_id: str
    email: Optional[str]
    role: str  # SUPER_ADMIN | AGENCY_ADMIN | AGENT
    agency_id: Optional[int]
    active: bool = True

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN.value

    @property
    def is_agency_admin(self) -> bool:
        return self.role == Role.AGENCY_ADMIN.value

    @property
    def is_agent(self) -> bool:
        return self.role == Role.AGENT.value


def principal_from_user(user: User) -> Principal:
    return Principal(
        user_id=int(user.id),
        external_auth_id=str(user.external_auth_id),
        email=user.email,
        role=str(user.role),
        agency_id=int(user.agency_id) if user.agency_id is not None else None,
        active=bool(user.active),
    )


# -------------------------
# Token / header extraction
# -------------------------
def _decode_token(token: str) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if not settings.auth_jwt_audience:
        options["verify_aud"] = False
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=list(settings.auth_jwt_algorithms),
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")


def identity_from_request(request: Request, authorization: Optional[str]) -> Optional[Identity]:
    """
    Sources (priority order):
      1) Authorization: Bearer <JWT>  (claims: sub, email)
      2) dev headers (ONLY if settings.auth_mode == "dev")

    Returns None when the caller presented nothing. A token that fails
    verification raises AuthenticationError rather than falling through.
    """
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()
        claims = _decode_token(token)
        sub = str(claims.get("sub") or "").strip()
        if not sub:
            raise AuthenticationError("Token missing sub")
        email = claims.get("email")
        return Identity(external_auth_id=sub, email=str(email).strip().lower() if email else None)

    if (settings.auth_mode or "").strip().lower() == "dev":
        ext_id = (request.headers.get(settings.dev_header_user_id) or "").strip()
        if ext_id:
            email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
            return Identity(external_auth_id=ext_id, email=email or None)

    return None


# -------------------------
# Identity -> profile
# -------------------------
def _provision(db: Session, identity: Identity) -> tuple[Optional[User], Optional[str]]:
    try:
        role = Role(str(settings.default_profile_role).strip().upper())
    except ValueError:
        return None, "invalid_default_role"

    agency_id = settings.default_profile_agency_id
    if role is Role.SUPER_ADMIN:
        agency_id = None
    else:
        if agency_id is None:
            return None, "no_default_agency"
        if db.get(Agency, int(agency_id)) is None:
            return None, "default_agency_missing"

    now = datetime.utcnow()
    user = User(
        external_auth_id=identity.external_auth_id,
        email=identity.email,
        role=role.value,
        agency_id=agency_id,
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("profile_provisioned", extra={"user_id": user.id, "agency_id": agency_id})
    return user, None


def resolve_identity(db: Session, identity: Optional[Identity]) -> tuple[Optional[User], Optional[str]]:
    """
    Maps an externally verified identity onto the local profile.

    Never raises: returns (user, None) on success or (None, reason) where
    reason is one of missing_identity | unknown_user | inactive |
    no_default_agency | default_agency_missing | invalid_default_role |
    provision_failed.
    """
    if identity is None or not identity.external_auth_id:
        return None, "missing_identity"

    user = db.scalar(select(User).where(User.external_auth_id == identity.external_auth_id))
    if user is None:
        if not settings.auto_provision_profiles:
            return None, "unknown_user"
        try:
            user, err = _provision(db, identity)
        except SQLAlchemyError:
            db.rollback()
            log.exception("profile_provision_failed")
            return None, "provision_failed"
        if user is None:
            return None, err

    if not bool(user.active):
        return None, "inactive"

    return user, None


# -------------------------
# FastAPI dependencies
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    identity = identity_from_request(request, authorization)
    user, err = resolve_identity(db, identity)
    if user is None:
        log.info("auth_rejected", extra={"status": 401, "action": err})
        raise AuthenticationError()
    return principal_from_user(user)


def get_optional_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[Principal]:
    """Anonymous callers get None; a presented but unusable identity is still a 401."""
    identity = identity_from_request(request, authorization)
    if identity is None:
        return None
    user, err = resolve_identity(db, identity)
    if user is None:
        log.info("auth_rejected", extra={"status": 401, "action": err})
        raise AuthenticationError()
    return principal_from_user(user)
