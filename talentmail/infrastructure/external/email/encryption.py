"""Credential encryption for email account secrets (Fernet).

Implements the encrypt(str) -> str / decrypt(str) -> str capability that
the provider factory and account service receive by injection.
"""

import base64
import json
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from talentmail.core.config import Settings, get_settings
from talentmail.domain.exceptions import CredentialException

DECRYPTION_ERROR_MSG = "Failed to decrypt credentials - invalid or corrupted data"
KDF_ITERATIONS = 100_000


class CredentialEncryptor:
    """Encrypt/decrypt secret blobs using Fernet (key derived from app secrets)."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._fernet = Fernet(self._derive_key(settings or get_settings()))

    @staticmethod
    def _derive_key(settings: Settings) -> bytes:
        """Derive 32-byte key from credential secret + encryption_salt via PBKDF2-HMAC-SHA256."""
        secret = settings.credential_encryption_secret or settings.secret_key
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=settings.encryption_salt.get_secret_value().encode(),
            iterations=KDF_ITERATIONS,
        )
        derived = kdf.derive(secret.get_secret_value().encode())
        return base64.urlsafe_b64encode(derived)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string to a token safe for storage."""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a stored token back to its string.

        Raises:
            CredentialException: If the token is invalid or was encrypted with another key.
        """
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            raise CredentialException(DECRYPTION_ERROR_MSG) from e

    def encrypt_json(self, data: dict[str, Any]) -> str:
        """Serialize a secret object and encrypt it."""
        return self.encrypt(json.dumps(data))

    def decrypt_json(self, ciphertext: str) -> dict[str, Any]:
        """Decrypt a stored secret object.

        Raises:
            CredentialException: If decryption fails or the payload is not a JSON object.
        """
        try:
            result = json.loads(self.decrypt(ciphertext))
        except json.JSONDecodeError as e:
            raise CredentialException("Decrypted credentials are not valid JSON") from e
        if not isinstance(result, dict):
            raise CredentialException("Decrypted credentials must be a JSON object")
        return result
