"""
Cryptographic primitives: AES-GCM for file bodies, RSA signatures for markers.

The rest of the package treats these as opaque functions:
- encrypt/decrypt never look at paths or extensions
- SigningIdentity only knows how to sign and verify byte strings
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.PublicKey import RSA
from Crypto.Random import get_random_bytes
from Crypto.Signature import pkcs1_15

from .config import AES_NONCE_SIZE, AES_TAG_SIZE, DEFAULT_RSA_BITS


# ---------------------------------------------------------------------------
# Symmetric cipher
# ---------------------------------------------------------------------------


def generate_key(size: int = 32) -> bytes:
    """Return a fresh random AES key."""
    return get_random_bytes(size)


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    """
    Encrypt with AES-GCM.

    Returns:
        bytes: nonce + tag + ciphertext
    """

    cipher = AES.new(key, AES.MODE_GCM, nonce=get_random_bytes(AES_NONCE_SIZE))
    ciphertext, tag = cipher.encrypt_and_digest(plaintext)
    return cipher.nonce + tag + ciphertext


def decrypt(key: bytes, data: bytes) -> bytes:
    """
    Reverse encrypt().

    Raises:
        ValueError: if the blob is truncated or fails authentication
    """

    if len(data) < AES_NONCE_SIZE + AES_TAG_SIZE:
        raise ValueError("ciphertext too short")

    nonce = data[:AES_NONCE_SIZE]
    tag = data[AES_NONCE_SIZE:AES_NONCE_SIZE + AES_TAG_SIZE]
    ciphertext = data[AES_NONCE_SIZE + AES_TAG_SIZE:]
    cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
    return cipher.decrypt_and_verify(ciphertext, tag)


# ---------------------------------------------------------------------------
# Signing identity
# ---------------------------------------------------------------------------


class SigningIdentity:
    """
    RSA key pair used to produce and check markers.

    Markers are PKCS#1 v1.5 signatures over SHA-256, so their length is
    the modulus size in bytes. A public-only identity can verify but not
    sign.
    """

    def __init__(self, key: RSA.RsaKey):
        self._key = key
        self._verifier = pkcs1_15.new(key.publickey())

    @classmethod
    def generate(cls, bits: int = DEFAULT_RSA_BITS) -> "SigningIdentity":
        return cls(RSA.generate(bits))

    @classmethod
    def from_pem(cls, data: bytes | str, passphrase: Optional[str] = None) -> "SigningIdentity":
        return cls(RSA.import_key(data, passphrase=passphrase))

    @classmethod
    def load(cls, path: str | Path, passphrase: Optional[str] = None) -> "SigningIdentity":
        return cls.from_pem(Path(path).read_bytes(), passphrase=passphrase)

    def to_pem(self, passphrase: Optional[str] = None) -> bytes:
        if passphrase:
            return self._key.export_key(
                format="PEM",
                passphrase=passphrase,
                pkcs=8,
                protection="scryptAndAES128-CBC",
            )
        return self._key.export_key(format="PEM")

    def public(self) -> "SigningIdentity":
        return SigningIdentity(self._key.publickey())

    @property
    def can_sign(self) -> bool:
        return self._key.has_private()

    @property
    def marker_size(self) -> int:
        return self._key.size_in_bytes()

    def sign(self, data: bytes) -> bytes:
        if not self.can_sign:
            raise TypeError("signing identity has no private key")
        return pkcs1_15.new(self._key).sign(SHA256.new(data))

    def verify(self, marker: bytes, data: bytes) -> bool:
        if len(marker) != self.marker_size:
            return False
        try:
            self._verifier.verify(SHA256.new(data), marker)
        except ValueError:
            return False
        return True
