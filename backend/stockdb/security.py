# backend/stockdb/security.py

"""
Password hashing, access tokens and the current-user dependency.

Access checks beyond "who is calling" live in `stockdb.context` and
`stockdb.permissions`.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHash
import bcrypt

from .database import get_db
from stockdb.apps.accounts import models as account_models

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 60

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
)

# Prefixes written by the stock system's previous login service.
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    if hashed_password.startswith("$argon2"):
        try:
            return _pwd_hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False
    if hashed_password.startswith(_BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            return False
    return False


def get_password_hash(password: str) -> str:
    return _pwd_hasher.hash(password)


def create_access_token(*, data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign `data` (sub, company_id, role) with an expiry claim added."""
    claims = dict(data)
    claims["exp"] = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode(claims, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises JWTError when the signature or expiry is bad."""
    return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])


def _unauthorised() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_for_token(db: Session, token: str) -> account_models.User:
    """
    Resolve a bearer token to its user.

    The token's `company_id` claim must still match the user's company, so a
    user moved between companies cannot reuse an older token.
    """
    try:
        claims = decode_access_token(token)
    except JWTError:
        raise _unauthorised()

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorised()
    user = db.query(account_models.User).filter(account_models.User.id == str(user_id)).first()
    if user is None:
        raise _unauthorised()
    if claims.get("company_id") != user.company_id:
        logger.warning("Token company does not match user", extra={"user_id": user.id})
        raise _unauthorised()
    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    return user_for_token(db, token)


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This account has been suspended.")
    return current_user
