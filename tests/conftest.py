# tests/conftest.py
# -*- coding: utf-8 -*-

import datetime as dt
import logging
import os
from typing import Callable

import pytest

from dcchain.pki.builder import ChainBuilder, IssuedChain
from dcchain.pki.dnq import DNQualifierDeriver
from dcchain.pki.issuer import CertificateIssuer
from dcchain.pki.keys import KeyGenerator, KeyPair
from dcchain.pki.names import SubjectFields
from dcchain.pki.policy import ExtensionPolicy
from dcchain.pki.tiers import Tier
from dcchain.settings import ChainSettings


# -----------------------
# ENVIRONMENT
# -----------------------

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # Settings must not pick up DCCHAIN_* from the developer's shell
    for k in list(os.environ):
        if k.startswith("DCCHAIN_"):
            monkeypatch.delenv(k, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # CLI entry points reconfigure the root logger
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# -----------------------
# KEYS (session scope: RSA generation is slow)
# -----------------------

@pytest.fixture(scope="session")
def key_generator() -> KeyGenerator:
    return KeyGenerator()


@pytest.fixture(scope="session")
def root_key(key_generator) -> KeyPair:
    return key_generator.generate(2048)


@pytest.fixture(scope="session")
def intermediate_key(key_generator) -> KeyPair:
    return key_generator.generate(2048)


@pytest.fixture(scope="session")
def leaf_key(key_generator) -> KeyPair:
    return key_generator.generate(2048)


@pytest.fixture(scope="session")
def other_key(key_generator) -> KeyPair:
    return key_generator.generate(2048)


# -----------------------
# ISSUANCE HELPERS
# -----------------------

@pytest.fixture(scope="session")
def policies() -> ExtensionPolicy:
    return ExtensionPolicy()


@pytest.fixture(scope="session")
def issuer() -> CertificateIssuer:
    return CertificateIssuer()


@pytest.fixture(scope="session")
def make_subject() -> Callable[[Tier, KeyPair], SubjectFields]:
    deriver = DNQualifierDeriver()

    def _make(tier: Tier, key_pair: KeyPair, entity: str = "dcstore") -> SubjectFields:
        return SubjectFields(
            organization="example.com",
            organizational_unit="csc.example.com",
            common_name=tier.common_name(entity),
            dn_qualifier=deriver.derive_raw(key_pair.public_key),
        )

    return _make


@pytest.fixture(scope="session")
def root_cert(issuer, policies, make_subject, root_key):
    return issuer.issue_root(root_key, make_subject(Tier.ROOT, root_key), 5, policies.policy_for(Tier.ROOT))


@pytest.fixture(scope="session")
def intermediate_cert(issuer, policies, make_subject, intermediate_key, root_cert, root_key):
    return issuer.issue_signed(
        intermediate_key,
        make_subject(Tier.INTERMEDIATE, intermediate_key),
        6,
        policies.policy_for(Tier.INTERMEDIATE),
        root_cert,
        root_key,
    )


@pytest.fixture(scope="session")
def leaf_cert(issuer, policies, make_subject, leaf_key, intermediate_cert, intermediate_key):
    return issuer.issue_signed(
        leaf_key,
        make_subject(Tier.LEAF, leaf_key),
        7,
        policies.policy_for(Tier.LEAF),
        intermediate_cert,
        intermediate_key,
    )


@pytest.fixture(scope="session")
def far_future() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=4000)


# -----------------------
# FULL CHAIN ON DISK
# -----------------------

@pytest.fixture(scope="session")
def chain_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("chain")


@pytest.fixture(scope="session")
def issued_chain(chain_dir) -> IssuedChain:
    settings = ChainSettings(out_dir=chain_dir)
    return ChainBuilder(settings).build()
