"""Bearer token verification. Tokens are issued by the main platform."""
from typing import Any, Dict

import jwt

from app.config import settings


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT. Raises ValueError when it is invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as exc:
        raise ValueError(f"Invalid token: {exc}") from exc
