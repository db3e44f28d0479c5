"""
Bearer-token identity verification.

The verifier turns a signed JWT into an ``Identity``. Routes do not call it
directly; they go through ``authenticate``, which returns either an
``Identity`` or an ``AuthError`` and leaves the decision to the handler.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt
from fastapi import Request

from .models import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthError:
    reason: str


class TokenVerifier:
    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 60):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=ttl_minutes)

    def issue(self, email: str, name: Optional[str] = None, uid: Optional[str] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": uid or uuid.uuid4().hex,
            "email": email,
            "iat": now,
            "exp": now + self.ttl,
        }
        if name:
            payload["name"] = name
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Union[Identity, AuthError]:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return AuthError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning("rejected bearer token: %s", e)
            return AuthError("Invalid token")

        email = payload.get("email")
        if not email:
            return AuthError("Token has no email claim")
        return Identity(uid=str(payload.get("sub") or email), email=email, name=payload.get("name"))


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(request: Request) -> Union[Identity, AuthError]:
    token = bearer_token(request.headers.get("Authorization"))
    if token is None:
        return AuthError("Unauthorized")
    verifier: TokenVerifier = request.app.state.verifier
    return verifier.verify(token)
