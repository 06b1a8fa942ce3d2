"""
Share Code Cipher

Generates share codes and encrypts them for storage. Encryption is
deterministic (AES-SIV), so a code typed in by a recipient can be encrypted
again and looked up by equality in the share store.
"""

import base64
import binascii
import logging
import os
import secrets
import string
import threading
from typing import Callable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESSIV

logger = logging.getLogger(__name__)

SHARE_CODE_ALPHABET = string.ascii_uppercase + string.digits
SHARE_CODE_LENGTH = 12
KEY_ENV_VAR = "SHARE_CODE_ENCRYPTION_KEY"
KEY_LENGTH = 64


def load_key_from_env() -> bytes:
    """
    Read the base64 encoded AES-SIV key from the environment.

    Raises:
        RuntimeError: If the variable is unset or not a 64-byte base64 key
    """
    encoded = os.getenv(KEY_ENV_VAR)
    if not encoded:
        raise RuntimeError(f"{KEY_ENV_VAR} is not set")

    try:
        key = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise RuntimeError(f"{KEY_ENV_VAR} is not valid base64") from e

    if len(key) != KEY_LENGTH:
        raise RuntimeError(f"{KEY_ENV_VAR} must decode to {KEY_LENGTH} bytes, got {len(key)}")
    return key


class LazySecret:
    """
    Read-through cache for a secret.

    The loader runs at most once, on first access, even when several threads
    ask for the value at the same time. A failed load is not cached.
    """

    def __init__(self, loader: Callable[[], bytes]):
        self._loader = loader
        self._value: Optional[bytes] = None
        self._lock = threading.Lock()

    def get(self) -> bytes:
        if self._value is None:
            with self._lock:
                if self._value is None:
                    self._value = self._loader()
                    logger.debug("Share code encryption key loaded")
        return self._value


class ShareCodeCipher:
    """Generates, encrypts and decrypts share codes."""

    def __init__(self, secret: LazySecret):
        self._secret = secret

    @staticmethod
    def generate_share_code(length: int = SHARE_CODE_LENGTH) -> str:
        return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(length))

    @staticmethod
    def normalize(share_code: str) -> str:
        return share_code.strip().upper()

    def encrypt(self, share_code: str) -> str:
        """
        Encrypt a share code.

        Args:
            share_code: Plain share code (case-insensitive)

        Returns:
            URL-safe base64 ciphertext, identical for identical codes
        """
        cipher = AESSIV(self._secret.get())
        token = cipher.encrypt(self.normalize(share_code).encode("utf-8"), None)
        return base64.urlsafe_b64encode(token).decode("ascii")

    def decrypt(self, encrypted_share_code: str) -> str:
        """
        Decrypt a stored share code.

        Raises:
            ValueError: If the ciphertext is malformed or was not produced
                with the current key
        """
        try:
            token = base64.urlsafe_b64decode(encrypted_share_code.encode("ascii"))
            plain = AESSIV(self._secret.get()).decrypt(token, None)
        except (ValueError, InvalidTag) as e:
            raise ValueError("Share code could not be decrypted") from e
        return plain.decode("utf-8")
