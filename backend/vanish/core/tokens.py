"""
Capability tokens.

Compact HS256 JWTs (header.payload.signature, base64url) granting one scope
on one resource for a bounded time. Nothing is stored server-side: a token is
valid from mint time until its embedded expiry.

Payload claims:
    sub      subject id (blob id for upload/download, room id for join)
    roomId   room the capability is bound to
    scope    "join" | "upload" | "download"
    iat/exp  issued-at / expires-at, epoch seconds
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from jose import jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode, base64url_encode

from vanish.core.config import settings

SCOPE_JOIN = "join"
SCOPE_UPLOAD = "upload"
SCOPE_DOWNLOAD = "download"
SCOPES = (SCOPE_JOIN, SCOPE_UPLOAD, SCOPE_DOWNLOAD)

_RESERVED_CLAIMS = {"sub", "roomId", "scope", "iat", "exp"}


@dataclass(frozen=True)
class TokenPayload:
    subject: str
    room_id: str
    scope: str
    issued_at: int
    expires_at: int
    extra: dict[str, Any] = field(default_factory=dict)


def mint_token(
    subject: str,
    room_id: str,
    scope: str,
    ttl: int,
    secret: str,
    *,
    max_ttl: int | None = None,
    extra: dict[str, Any] | None = None,
    clock: Callable[[], float] = time.time,
) -> str:
    if scope not in SCOPES:
        raise ValueError(f"Unknown token scope: {scope}")
    ttl = int(ttl)
    if max_ttl is not None:
        ttl = min(ttl, max_ttl)

    issued_at = int(clock())
    payload: dict[str, Any] = {}
    if extra:
        payload.update({k: v for k, v in extra.items() if k not in _RESERVED_CLAIMS})
    payload.update({
        "sub": subject,
        "roomId": room_id,
        "scope": scope,
        "iat": issued_at,
        "exp": issued_at + ttl,
    })
    return jwt.encode(payload, secret, algorithm=settings.TOKEN_ALGORITHM)


def _is_canonical(token: str) -> bool:
    # base64 decoding tolerates stray characters and non-zero padding bits,
    # so a segment has to re-encode to exactly itself.
    segments = token.split(".")
    if len(segments) != 3:
        return False
    try:
        for seg in segments:
            raw = seg.encode("ascii")
            if not raw or base64url_encode(base64url_decode(raw)) != raw:
                return False
    except (UnicodeEncodeError, ValueError):
        return False
    return True


def verify_token(
    token: str,
    secret: str,
    *,
    clock: Callable[[], float] = time.time,
) -> TokenPayload | None:
    """
    Return the decoded payload, or None for any malformed, forged or expired token.

    The reason for a failure is deliberately not reported.
    """
    if not isinstance(token, str) or not _is_canonical(token):
        return None
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[settings.TOKEN_ALGORITHM],
            options={"verify_exp": False},
        )
    except JOSEError:
        return None

    try:
        payload = TokenPayload(
            subject=str(claims["sub"]),
            room_id=str(claims["roomId"]),
            scope=str(claims["scope"]),
            issued_at=int(claims["iat"]),
            expires_at=int(claims["exp"]),
            extra={k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS},
        )
    except (KeyError, TypeError, ValueError):
        return None

    if clock() >= payload.expires_at:
        return None
    return payload
