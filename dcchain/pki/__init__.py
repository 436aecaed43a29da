# dcchain/pki/__init__.py
from .builder import ChainBuilder, IssuedCertificate, IssuedChain
from .chainfile import ChainFile
from .dnq import DNQualifierDeriver, escape_qualifier, unescape_qualifier
from .errors import (
    ChainError,
    ChainValidationError,
    DNQualifierError,
    IssuanceError,
    KeyGenerationError,
    OutputError,
    PolicyError,
)
from .issuer import CertificateIssuer
from .keys import KeyGenerator, KeyPair, load_private_key_pem
from .names import SubjectFields, name_to_slash
from .policy import ExtensionPolicy, ExtensionSet, TierPolicy, effective_path_length
from .report import ChainReporter, ReportEntry
from .store import OutputStore
from .tiers import CHAIN_ORDER, Tier
from .verify import ChainValidator, VerificationResult, load_pem_bundle

__all__ = [
    "CHAIN_ORDER",
    "CertificateIssuer",
    "ChainBuilder",
    "ChainError",
    "ChainFile",
    "ChainReporter",
    "ChainValidationError",
    "ChainValidator",
    "DNQualifierDeriver",
    "DNQualifierError",
    "ExtensionPolicy",
    "ExtensionSet",
    "IssuanceError",
    "IssuedCertificate",
    "IssuedChain",
    "KeyGenerationError",
    "KeyGenerator",
    "KeyPair",
    "OutputError",
    "OutputStore",
    "PolicyError",
    "ReportEntry",
    "SubjectFields",
    "Tier",
    "TierPolicy",
    "VerificationResult",
    "effective_path_length",
    "escape_qualifier",
    "load_pem_bundle",
    "load_private_key_pem",
    "name_to_slash",
    "unescape_qualifier",
]
