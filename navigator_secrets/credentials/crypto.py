"""
Credentials Crypto Core — key derivation and the two encryption modes.

- Lookup mode: SHA-256(key material) + MD5(key material) IV → AES-256-CTR → hex.
  Deterministic on purpose: stored secrets are found by ciphertext equality.
- Sealed mode: HKDF(master key, "navigator-secrets-payload") → AES-GCM with a
  random 96-bit nonce → urlsafe base64 of [nonce 12B][payload + tag 16B].

Security Note:
    Lookup mode is not semantically secure (equal plaintexts give equal
    ciphertexts). Only use it where equality matching is required.
    Never log plaintext or ciphertext values.
"""
import os
import base64
import binascii
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..exceptions import CryptoError

logger = logging.getLogger("navigator.secrets")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256

SEAL_CONTEXT = "navigator-secrets-payload"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def _digest(algorithm: hashes.HashAlgorithm, material: str) -> bytes:
    digest = hashes.Hash(algorithm)
    digest.update(material.encode("utf-8"))
    return digest.finalize()


def derive_key(material: str) -> bytes:
    """Derive the 256-bit lookup-mode key (SHA-256 of the key material)."""
    return _digest(hashes.SHA256(), material)


def derive_iv(material: str) -> bytes:
    """Derive the 128-bit lookup-mode IV (MD5 of the key material)."""
    return _digest(hashes.MD5(), material)


def derive_seal_key(material: str, context: str = SEAL_CONTEXT) -> bytes:
    """Derive a 32-byte sealing key using HKDF-SHA256.

    Args:
        material: Input key material (the master key).
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic derivation, the nonce carries randomness
        info=context.encode("utf-8"),
    )
    return hkdf.derive(material.encode("utf-8"))


class SecretCipher:
    """Symmetric cipher keyed by an injected master key.

    Args:
        master_key: Process-wide key material. Used whenever a call does
            not pass its own ``key_material``.
    """

    def __init__(self, master_key: str):
        if not master_key:
            raise ValueError("master_key cannot be empty")
        self._master_key = master_key
        self._seal_key = derive_seal_key(master_key)

    def __repr__(self) -> str:
        return "<SecretCipher>"

    def _ctr(self, key_material: Optional[str]) -> Cipher:
        material = key_material or self._master_key
        return Cipher(algorithms.AES(derive_key(material)), modes.CTR(derive_iv(material)))

    # ------------------------------------------------------------------
    # Lookup mode (deterministic)
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str, key_material: Optional[str] = None) -> str:
        """Encrypt plaintext deterministically and return hex ciphertext."""
        encryptor = self._ctr(key_material).encryptor()
        data = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return data.hex()

    def decrypt(self, ciphertext: str, key_material: Optional[str] = None) -> str:
        """Decrypt hex ciphertext produced by :meth:`encrypt`.

        Raises:
            CryptoError: If ciphertext is not valid hex or does not decode
                to UTF-8 under the given key material.
        """
        try:
            raw = bytes.fromhex(ciphertext)
        except (ValueError, TypeError) as err:
            raise CryptoError("Ciphertext is not valid hex") from err
        decryptor = self._ctr(key_material).decryptor()
        data = decryptor.update(raw) + decryptor.finalize()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise CryptoError("Ciphertext does not decrypt to text") from err

    # ------------------------------------------------------------------
    # Sealed mode (random nonce, authenticated)
    # ------------------------------------------------------------------

    def seal(self, data: bytes) -> str:
        """Encrypt and authenticate ``data`` under the master key.

        Returns:
            urlsafe base64 (unpadded) of [nonce 12B][ciphertext + tag].
        """
        nonce = os.urandom(NONCE_SIZE)
        ct = AESGCM(self._seal_key).encrypt(nonce, data, None)
        return base64.urlsafe_b64encode(nonce + ct).rstrip(b"=").decode("ascii")

    def unseal(self, token: str) -> bytes:
        """Reverse :meth:`seal`.

        Raises:
            CryptoError: On bad encoding, truncated input or tag mismatch.
        """
        try:
            padded = token + "=" * (-len(token) % 4)
            blob = base64.urlsafe_b64decode(padded.encode("ascii"))
        except (binascii.Error, ValueError, UnicodeEncodeError) as err:
            raise CryptoError("Sealed value is not valid base64") from err
        _min = NONCE_SIZE + TAG_SIZE
        if len(blob) < _min:
            raise CryptoError(
                f"Sealed value too short: {len(blob)} bytes (minimum {_min})"
            )
        nonce, ct = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            return AESGCM(self._seal_key).decrypt(nonce, ct, None)
        except InvalidTag as err:
            raise CryptoError("Sealed value failed authentication") from err
