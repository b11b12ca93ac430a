# internhub/security/jwt_utils.py
import jwt

from internhub.core import config
from internhub.core.exceptions import Unauthenticated
from internhub.models.notification import Actor


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT (WebSocket query token or bearer token).
    Raises Unauthenticated when invalid.
    """
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
    except jwt.PyJWTError:
        raise Unauthenticated("Invalid token")


def get_current_user(authorization_header: str) -> dict:
    """
    Takes ``Authorization: Bearer <token>``, validates it and returns the payload.
    Raises Unauthenticated when missing or invalid.
    """
    if not authorization_header:
        raise Unauthenticated("Missing Authorization header")

    if not authorization_header.startswith("Bearer "):
        raise Unauthenticated("Invalid Authorization header format")

    token = authorization_header.removeprefix("Bearer ").strip()
    payload = decode_token(token)

    if "sub" not in payload:
        raise Unauthenticated("Token without subject")

    return payload


def actor_from_payload(payload: dict) -> Actor:
    # role travels as a claim; an absent role resolves to "sees nothing"
    return Actor(id=str(payload["sub"]), role=payload.get("role"))


def create_token(sub: str, role: str = None, **claims) -> str:
    """Sign a token for ``sub``. Used by tooling and tests; the marketplace issues real ones."""
    payload = {"sub": sub, **claims}
    if role:
        payload["role"] = role
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALG)
