"""
Secure envelope: per-value encryption of top-level configuration entries.

Each top-level value is serialized with the store's format, encrypted with a
symmetric cipher keyed by a shared secret and replaced by an envelope::

    {"alg": "aes-256-ctr", "value": "<hex ciphertext>", "iv": "<hex iv>"}

Envelopes without ``iv`` come from older writers that derived the IV from the
secret (OpenSSL ``EVP_BytesToKey``). They still open, but trigger a single
warning per document advising re-encryption. Sealing always writes the
explicit-IV format.
"""

import hashlib
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Type

from cryptography.hazmat.decrepit.ciphers import modes as decrepit_modes
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from confstore.core.exceptions import DecryptionError, EncryptionError, SecureEnvelopeError
from confstore.core.logging import logger
from confstore.formats import FormatAdapter, get_format

DEFAULT_ALGORITHM = "aes-256-ctr"
IV_SIZE = 16
LEGACY_WARNING = (
    "Your encrypted file is outdated (encrypted without iv). Please re-encrypt your file."
)

WarningCallback = Callable[[str], None]


@dataclass(frozen=True)
class CipherSpec:
    """An OpenSSL-named AES variant."""

    name: str
    key_size: int
    mode: Callable[[bytes], Any]
    padded: bool = False
    iv_size: int = IV_SIZE


def _build_registry() -> Dict[str, CipherSpec]:
    registry: Dict[str, CipherSpec] = {}
    for bits in (128, 192, 256):
        for mode_name, mode, padded in (
            ("ctr", modes.CTR, False),
            ("cbc", modes.CBC, True),
            ("cfb", decrepit_modes.CFB, False),
            ("ofb", decrepit_modes.OFB, False),
        ):
            name = f"aes-{bits}-{mode_name}"
            registry[name] = CipherSpec(name=name, key_size=bits // 8, mode=mode, padded=padded)
    return registry


CIPHERS: Dict[str, CipherSpec] = _build_registry()


def get_cipher(
    alg: Any, error_cls: Type[SecureEnvelopeError] = SecureEnvelopeError
) -> CipherSpec:
    """Look up an algorithm by its OpenSSL name (case-insensitive)."""
    spec = CIPHERS.get(str(alg).lower()) if isinstance(alg, str) else None
    if spec is None:
        raise error_cls(
            f"Unsupported cipher algorithm: {alg}",
            context={"alg": alg, "supported": sorted(CIPHERS)},
        )
    return spec


def evp_bytes_to_key(secret: bytes, key_size: int, iv_size: int) -> Tuple[bytes, bytes]:
    """
    OpenSSL EVP_BytesToKey with MD5, one iteration and no salt.

    This is how legacy envelopes (no ``iv``) derived both key and IV.
    """
    derived = b""
    block = b""
    while len(derived) < key_size + iv_size:
        block = hashlib.md5(block + secret).digest()
        derived += block
    return derived[:key_size], derived[key_size : key_size + iv_size]


def _encrypt(spec: CipherSpec, key: bytes, iv: bytes, data: bytes) -> bytes:
    if spec.padded:
        padder = padding.PKCS7(128).padder()
        data = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), spec.mode(iv)).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def _decrypt(spec: CipherSpec, key: bytes, iv: bytes, data: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), spec.mode(iv)).decryptor()
    plaintext = decryptor.update(data) + decryptor.finalize()
    if spec.padded:
        unpadder = padding.PKCS7(128).unpadder()
        plaintext = unpadder.update(plaintext) + unpadder.finalize()
    return plaintext


def _default_warning(message: str) -> None:
    logger.warning(message)


class SecureEnvelope:
    """
    Seals and opens documents one top-level value at a time.

    Args:
        alg: Algorithm used when sealing (OpenSSL name)
        secret: Shared secret. Its UTF-8 bytes are the key on the explicit-IV
            path, so their length must match the algorithm's key size
        format: Format adapter (or registered name) for the inner values
        on_warning: Receives the legacy-format warning. Defaults to the
            package logger
    """

    def __init__(
        self,
        alg: str,
        secret: str,
        format: Any = None,
        on_warning: Optional[WarningCallback] = None,
    ) -> None:
        self.alg = alg
        self.secret = secret
        self.format: FormatAdapter = get_format(format)
        self.on_warning: WarningCallback = on_warning or _default_warning

    def _key(self, spec: CipherSpec, error_cls: Type[SecureEnvelopeError], key: str) -> bytes:
        raw = self.secret.encode("utf-8")
        if len(raw) != spec.key_size:
            raise error_cls(
                f"Invalid key length for {spec.name}: expected {spec.key_size} bytes, "
                f"got {len(raw)}",
                context={"key": key, "alg": spec.name},
            )
        return raw

    def seal(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Replace every top-level value with an envelope. Key order is kept."""
        spec = get_cipher(self.alg, EncryptionError)
        sealed: Dict[str, Any] = {}

        for key, value in document.items():
            try:
                plaintext = self.format.stringify(value)
            except Exception as e:
                raise EncryptionError(
                    f"Cannot serialize '{key}' for encryption: {e}",
                    context={"key": key, "alg": spec.name},
                    cause=e,
                ) from e
            iv = os.urandom(spec.iv_size)
            try:
                ciphertext = _encrypt(
                    spec, self._key(spec, EncryptionError, key), iv, plaintext.encode("utf-8")
                )
            except SecureEnvelopeError:
                raise
            except ValueError as e:
                raise EncryptionError(
                    f"Cannot encrypt '{key}': {e}", context={"key": key, "alg": spec.name}, cause=e
                ) from e
            sealed[key] = {"alg": self.alg, "value": ciphertext.hex(), "iv": iv.hex()}

        return sealed

    def open(self, document: Any) -> Dict[str, Any]:
        """
        Decrypt every envelope and re-parse its payload.

        Emits the legacy warning once if any envelope lacks an ``iv``.
        """
        if not isinstance(document, dict):
            raise DecryptionError(
                "Encrypted document must be a mapping of envelopes",
                context={"type": type(document).__name__},
            )

        outdated = False
        opened: Dict[str, Any] = {}
        for key, envelope in document.items():
            value, legacy = self._open_entry(key, envelope)
            opened[key] = value
            outdated = outdated or legacy

        if outdated:
            self.on_warning(LEGACY_WARNING)

        return opened

    def _open_entry(self, key: str, envelope: Any) -> Tuple[Any, bool]:
        if not isinstance(envelope, dict) or "value" not in envelope:
            raise DecryptionError(
                f"Entry '{key}' is not an encrypted envelope", context={"key": key}
            )

        spec = get_cipher(envelope.get("alg") or self.alg, DecryptionError)
        legacy = not envelope.get("iv")

        try:
            ciphertext = bytes.fromhex(envelope["value"])
            if legacy:
                key_bytes, iv = evp_bytes_to_key(
                    self.secret.encode("utf-8"), spec.key_size, spec.iv_size
                )
            else:
                key_bytes = self._key(spec, DecryptionError, key)
                iv = bytes.fromhex(envelope["iv"])
            plaintext = _decrypt(spec, key_bytes, iv, ciphertext).decode("utf-8")
        except SecureEnvelopeError:
            raise
        except (TypeError, ValueError) as e:
            # bad hex, wrong IV size, bad padding and non UTF-8 output all land here
            raise DecryptionError(
                f"Cannot decrypt '{key}': {e}", context={"key": key, "alg": spec.name}, cause=e
            ) from e

        try:
            return self.format.parse(plaintext), legacy
        except Exception as e:
            raise DecryptionError(
                f"Decrypted value of '{key}' could not be parsed: {e}",
                context={"key": key, "alg": spec.name},
                cause=e,
            ) from e


def seal(document: Dict[str, Any], alg: str, secret: str, format: Any = None) -> Dict[str, Any]:
    """Functional form of ``SecureEnvelope.seal``."""
    return SecureEnvelope(alg, secret, format).seal(document)


def open_document(
    document: Any,
    alg: str,
    secret: str,
    format: Any = None,
    on_warning: Optional[WarningCallback] = None,
) -> Dict[str, Any]:
    """Functional form of ``SecureEnvelope.open``."""
    return SecureEnvelope(alg, secret, format, on_warning).open(document)
