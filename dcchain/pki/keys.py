# dcchain/pki/keys.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from .errors import KeyGenerationError

logger = logging.getLogger(__name__)

__all__ = [
    "MIN_RSA_BITS",
    "KeyPair",
    "KeyGenerator",
    "load_private_key_pem",
]

MIN_RSA_BITS = 2048


@dataclass(frozen=True)
class KeyPair:
    """RSA key pair owned by exactly one tier for the duration of a run."""

    private_key: rsa.RSAPrivateKey

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()

    @property
    def key_size(self) -> int:
        return self.private_key.key_size

    def private_pem(self) -> bytes:
        # Unencrypted PKCS#8: key protection is out of scope for this tool.
        return self.private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())

    def public_pem(self) -> bytes:
        return self.public_key.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)

    def matches(self, public_key) -> bool:
        if not isinstance(public_key, rsa.RSAPublicKey):
            return False
        return public_key.public_numbers() == self.public_key.public_numbers()


class KeyGenerator:
    def __init__(self, public_exponent: int = 65537) -> None:
        self.public_exponent = public_exponent

    def generate(self, bits: int) -> KeyPair:
        if bits < MIN_RSA_BITS:
            raise KeyGenerationError(f"RSA key size must be >= {MIN_RSA_BITS}, got {bits}")
        try:
            priv = rsa.generate_private_key(public_exponent=self.public_exponent, key_size=bits)
        except (ValueError, TypeError) as e:
            raise KeyGenerationError(f"RSA key generation failed: {e}") from e
        logger.debug("generated RSA-%d key pair", bits)
        return KeyPair(priv)


def load_private_key_pem(pem: Union[str, bytes], password: Optional[bytes] = None) -> KeyPair:
    data = pem.encode() if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_private_key(data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"Failed to load private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyGenerationError(f"Expected an RSA private key, got {type(key).__name__}")
    return KeyPair(key)
