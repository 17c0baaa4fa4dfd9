"""Purpose-scoped symmetric encryption for secrets stored at rest."""
from __future__ import annotations

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from app.config import settings


class DecryptionError(RuntimeError):
    """Raised when a ciphertext cannot be decrypted with the current key."""


class EncryptionService:
    """Wrapper around Fernet symmetric encryption bound to one purpose label.

    The Fernet key is derived from the deployment secret and the purpose with
    HKDF, so a ciphertext produced for ``"JiraApiToken"`` cannot be opened by a
    service created for any other purpose.
    """

    def __init__(self, secret_key: str, purpose: str):
        if not secret_key:
            raise ValueError("Invalid encryption key configured")
        if not purpose:
            raise ValueError("Encryption purpose must not be empty")
        self.purpose = purpose
        derived = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=purpose.encode("utf-8"),
        ).derive(secret_key.encode("utf-8"))
        self._fernet = Fernet(base64.urlsafe_b64encode(derived))

    def encrypt_bytes(self, data: bytes) -> bytes:
        return self._fernet.encrypt(data)

    def decrypt_bytes(self, token: bytes) -> bytes:
        try:
            return self._fernet.decrypt(token)
        except InvalidToken as exc:
            raise DecryptionError(
                f"Unable to decrypt value for purpose '{self.purpose}'"
            ) from exc

    def encrypt_text(self, text: str) -> str:
        if not text:
            raise ValueError("Value to encrypt must not be empty")
        return self.encrypt_bytes(text.encode("utf-8")).decode("utf-8")

    def decrypt_text(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return token
        return self.decrypt_bytes(token.encode("utf-8")).decode("utf-8")


def _deployment_secret() -> str:
    """Return the configured encryption secret or derive one from SECRET_KEY."""
    if settings.ENCRYPTION_SECRET:
        return settings.ENCRYPTION_SECRET
    digest = hashlib.sha256(settings.SECRET_KEY.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8")


def get_protector(purpose: str) -> EncryptionService:
    """Build an encryption capability for ``purpose`` keyed to this deployment."""
    return EncryptionService(_deployment_secret(), purpose)
