"""Fernet encryption for Figma OAuth2 tokens at rest.

Master key sourced from FIGMA_FOR_JIRA_ENCRYPTION_KEY. Without a key, values
are stored as-is so local development needs no setup; encrypted values carry a
prefix so rows written before a key was configured stay readable.
"""

from cryptography.fernet import Fernet, InvalidToken

from figma_for_jira.logging_config import get_logger

logger = get_logger(__name__)

_MAGIC = "ffjenc1:"


class TokenCipher:
    """Encrypts and decrypts token strings with an optional Fernet key."""

    def __init__(self, key: str = "") -> None:
        self._fernet: Fernet | None = None
        if key:
            try:
                self._fernet = Fernet(key.encode())
            except ValueError as e:
                raise ValueError("Invalid encryption key") from e
        else:
            logger.warning(
                "No encryption key configured (FIGMA_FOR_JIRA_ENCRYPTION_KEY). "
                "Figma OAuth2 tokens will be stored unencrypted."
            )

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plaintext: str) -> str:
        if self._fernet is None:
            return plaintext
        return _MAGIC + self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, value: str) -> str:
        if not value.startswith(_MAGIC):
            return value
        if self._fernet is None:
            raise RuntimeError(
                "Token is encrypted but no encryption key is configured. "
                "Set FIGMA_FOR_JIRA_ENCRYPTION_KEY to read stored credentials."
            )
        try:
            return self._fernet.decrypt(value[len(_MAGIC) :].encode()).decode()
        except InvalidToken:
            raise ValueError("Failed to decrypt token: key mismatch or corrupted data") from None
