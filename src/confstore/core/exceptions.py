"""
Unified exception hierarchy for confstore.
SINGLE SOURCE of the errors raised by stores, formats and the secure envelope.
"""

import secrets
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List


class ConfstoreError(Exception):
    """
    Base error of the confstore package.

    Features:
    1. Structured serialization
    2. Rich context (the file path is always in ``context["file"]`` when known)
    3. Resolution suggestions
    4. Unique ID for tracking
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.id: str = secrets.token_hex(16)
        self.timestamp: datetime = datetime.now(timezone.utc)
        self.message: str = message
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[BaseException] = cause
        self.suggestions: List[str] = []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to a dictionary.

        Returns:
            {
                "error_id": "hex32chars",
                "code": "ParseError",
                "message": "Error parsing your configuration file: [...]: ...",
                "timestamp": "2024-01-20T10:30:00Z",
                "context": {"file": "..."}
            }
        """
        result: Dict[str, Any] = {
            "error_id": self.id,
            "code": self.code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "context": self.context,
        }

        if self.cause:
            result["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}

        if self.suggestions:
            result["suggestions"] = self.suggestions

        return result

    def add_suggestion(self, suggestion: str) -> None:
        """
        Add a resolution suggestion to the error.

        Example:
            error = ConfigurationError("secure.secret option is required")
            error.add_suggestion("Pass secure={'secret': ...} or a secret_path")
        """
        if not suggestion or not isinstance(suggestion, str):
            return

        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)

    def is_retryable(self) -> bool:
        """Whether retrying the same call could succeed. Never retried internally."""
        return False


class ConfigurationError(ConfstoreError):
    """Invalid construction options (fatal, raised before any I/O on the store file)."""

    pass


class StoreIOError(ConfstoreError):
    """
    Read or write failure on the store file, other than "does not exist".

    Permissions, missing parent directory and full disks end up here.
    """

    def is_retryable(self) -> bool:
        """I/O errors are sometimes transient (locks, full disks being cleaned)."""
        return True


class ParseError(ConfstoreError):
    """
    The store file could not be turned into a document.

    Wraps Format Adapter failures, bad encodings and, since decryption is
    interleaved with parsing, envelope failures too.
    """

    pass


class SecureEnvelopeError(ConfstoreError):
    """Cryptographic failure while sealing or opening envelopes."""

    pass


class EncryptionError(SecureEnvelopeError):
    """A value could not be sealed (unknown algorithm, bad key length)."""

    pass


class DecryptionError(SecureEnvelopeError):
    """
    An envelope could not be opened.

    Causes: wrong secret, corrupted ciphertext, malformed envelope,
    unsupported algorithm.
    """

    pass


__all__ = [
    "ConfstoreError",
    "ConfigurationError",
    "StoreIOError",
    "ParseError",
    "SecureEnvelopeError",
    "EncryptionError",
    "DecryptionError",
]
