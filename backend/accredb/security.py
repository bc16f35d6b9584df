# backend/accredb/security.py

"""
Identity for the accreditation API.

The portal's auth service issues HS256 bearer tokens whose `sub` claim is
a user id. This module only verifies them and maps the subject to an
active `User`; logins, passwords and token issuance live elsewhere.

Lifecycle operations re-check roles in the service layer, so the
dependencies here are a coarse gate for the HTTP surface only.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional, Tuple, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from accredb.apps.accounts import models as account_models
from accredb.apps.accounts.models import AccountRole

logger = logging.getLogger(__name__)

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_user_by_id(db: Session, user_id: Union[str, int, None]) -> Optional[account_models.User]:
    key = str(user_id).strip() if user_id is not None else ""
    if not key:
        return None
    return db.get(account_models.User, key)


def decode_subject(token: str) -> Optional[str]:
    """`sub` of a valid token; None for malformed, expired or foreign tokens."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected bearer token", extra={"error": exc.__class__.__name__})
        return None
    subject = claims.get("sub")
    return None if subject is None else str(subject)


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    user = get_user_by_id(db, decode_subject(token))
    if user is None:
        raise _unauthenticated()
    return user


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user account",
        )
    return current_user


def _as_roles(roles: Tuple[Union[AccountRole, str], ...]) -> Tuple[AccountRole, ...]:
    resolved = []
    for role in roles:
        try:
            resolved.append(AccountRole(role))
        except ValueError:
            raise ValueError(f"Unknown role {role!r} passed to require_roles()") from None
    return tuple(resolved)


def require_roles(
    *allowed_roles: Union[AccountRole, str],
) -> Callable[[account_models.User], account_models.User]:
    """
    Dependency factory: the active user must hold one of `allowed_roles`.

        @router.get("/verify/{token}")
        def verify(user: User = Depends(require_roles(AccountRole.CHECKPOINT_OPERATOR))):
            ...

    Superusers always pass.
    """
    roles = _as_roles(allowed_roles)

    def dependency(
        current_user: account_models.User = Depends(get_current_active_user),
    ) -> account_models.User:
        if not current_user.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this operation",
            )
        return current_user

    return dependency


# Gate for checkpoint scans.
require_scanner = require_roles(
    AccountRole.ADMIN,
    AccountRole.ACCREDITATION_APPROVER,
    AccountRole.CHECKPOINT_OPERATOR,
)
