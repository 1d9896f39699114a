"""Security related functions."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from app.core.config import settings
from app.exceptions.base import UnauthorizedError

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    """Hash ``password`` with bcrypt; only the hash is ever stored."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.bcrypt_rounds),
    ).decode("utf-8")


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token, for storing refresh tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class TokenAuthenticator:
    """
    Issues and verifies the API's bearer tokens.

    Tokens are HS256 JWTs signed with the application secret. The ``sub``
    claim carries the user id, ``exp`` is always enforced and ``type``
    separates short-lived access tokens from refresh tokens.

    :ivar secret_key: The secret key used to sign and verify tokens.
    :type secret_key: str
    :ivar algorithm: The JWT signing algorithm.
    :type algorithm: str
    """

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm

    def create_access_token(self, subject: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token for ``subject``."""
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
        now = datetime.now(timezone.utc)
        payload = {"sub": str(subject), "type": ACCESS_TOKEN, "iat": now, "exp": now + expires_delta}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_refresh_token(self, subject: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a refresh token; ``jti`` makes every token unique."""
        if expires_delta is None:
            expires_delta = timedelta(days=settings.refresh_token_expire_days)
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "type": REFRESH_TOKEN,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str, token_type: str = ACCESS_TOKEN) -> dict:
        """
        Verifies a token's signature and expiry and returns its payload.

        :param token: The JWT token to be verified.
        :param token_type: Expected ``type`` claim; tokens without one count as access tokens.
        :return: A dictionary containing the decoded payload of the token.
        :raises UnauthorizedError: If the token is expired, malformed or lacks a subject.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except ExpiredSignatureError as e:
            raise UnauthorizedError("Authentication token has expired") from e
        except InvalidTokenError as e:
            raise UnauthorizedError("Invalid authentication token") from e

        if payload.get("type", ACCESS_TOKEN) != token_type:
            raise UnauthorizedError("Invalid authentication token")

        return payload
