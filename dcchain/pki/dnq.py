# dcchain/pki/dnq.py
"""
dnQualifier derivation.

The qualifier ties a subject name to its public key without revealing
anything about the private key:

    SubjectPublicKeyInfo (DER)
      -> strip the encoding header (24 bytes for RSA-2048)
      -> SHA-1 over the remaining subjectPublicKey bit string
      -> base64 (28 chars incl. padding)
      -> escape '/' as '\\/' for slash-delimited DN strings

Same key bytes in, same qualifier out; nothing here is random.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .errors import DNQualifierError

logger = logging.getLogger(__name__)

__all__ = [
    "SPKI_RSA2048_HEADER_LENGTH",
    "QUALIFIER_DIGEST_SIZE",
    "DNQualifierDeriver",
    "escape_qualifier",
    "unescape_qualifier",
    "qualifier_digest",
]

SPKI_RSA2048_HEADER_LENGTH = 24
QUALIFIER_DIGEST_SIZE = 20  # SHA-1


def escape_qualifier(raw: str) -> str:
    return raw.replace("/", "\\/")


def unescape_qualifier(escaped: str) -> str:
    return escaped.replace("\\/", "/")


def qualifier_digest(qualifier: str) -> bytes:
    """Decode a (possibly escaped) qualifier back to its 20 digest bytes."""
    try:
        digest = base64.b64decode(unescape_qualifier(qualifier), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DNQualifierError(f"Qualifier is not valid base64: {qualifier!r}") from e
    if len(digest) != QUALIFIER_DIGEST_SIZE:
        raise DNQualifierError(f"Qualifier decodes to {len(digest)} bytes, expected {QUALIFIER_DIGEST_SIZE}")
    return digest


class DNQualifierDeriver:
    @staticmethod
    def _split_spki(public_key) -> Tuple[bytes, bytes]:
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise DNQualifierError(f"Unsupported public key type: {type(public_key).__name__}")
        try:
            spki = public_key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
            # For RSA the subjectPublicKey bit string holds the PKCS#1 RSAPublicKey
            bit_string = public_key.public_bytes(Encoding.DER, PublicFormat.PKCS1)
        except ValueError as e:
            raise DNQualifierError(f"Cannot encode public key: {e}") from e
        if len(bit_string) >= len(spki) or not spki.endswith(bit_string):
            raise DNQualifierError("Malformed SubjectPublicKeyInfo encoding")
        return spki[: len(spki) - len(bit_string)], bit_string

    def header_length(self, public_key) -> int:
        header, _ = self._split_spki(public_key)
        return len(header)

    def derive_raw(self, public_key) -> str:
        _, bit_string = self._split_spki(public_key)
        h = hashes.Hash(hashes.SHA1())
        h.update(bit_string)
        return base64.b64encode(h.finalize()).decode("ascii")

    def derive(self, public_key) -> str:
        raw = self.derive_raw(public_key)
        escaped = escape_qualifier(raw)
        logger.debug("derived dnQualifier %s", escaped)
        return escaped
