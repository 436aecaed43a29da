# dcchain/__init__.py
"""
dcchain: digital-cinema style X.509 certificate chain builder.

Root authority -> intermediate authority -> leaf content signer, with the
per-tier basicConstraints/keyUsage profile and a subject dnQualifier
derived from each certificate's own public key.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
