from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

from ..config import get_settings
from ..models import UserRole


@dataclass(frozen=True)
class AccessTokenClaims:
    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def create_access_token(
    *,
    user_id: int,
    role: UserRole = UserRole.PARTICIPANT,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().access_token_ttl_minutes)
    now = datetime.now(timezone.utc)
    exp = now + expires_delta
    payload = {"sub": str(user_id), "role": role.value, "iat": now, "exp": exp}
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> AccessTokenClaims:
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if sub is None:
        raise ValueError("token missing sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError) as exc:
        raise ValueError("token sub is not an integer") from exc

    try:
        role = UserRole(payload.get("role", UserRole.PARTICIPANT.value))
    except ValueError as exc:
        raise ValueError("token role is not recognised") from exc
    return AccessTokenClaims(user_id=user_id, role=role)
