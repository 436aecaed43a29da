# tests/unit/test_chainfile.py
# -*- coding: utf-8 -*-

import pytest
from cryptography.hazmat.primitives.serialization import Encoding

from dcchain.pki.chainfile import ChainFile
from dcchain.pki.errors import ChainValidationError


def test_append_in_order(root_cert, intermediate_cert, leaf_cert):
    chain = ChainFile()
    for cert in (root_cert, intermediate_cert, leaf_cert):
        assert chain.append(cert).ok
    assert chain.certificates == [root_cert, intermediate_cert, leaf_cert]
    assert len(chain) == 3


def test_out_of_order_append_is_refused(intermediate_cert):
    chain = ChainFile()
    with pytest.raises(ChainValidationError):
        chain.append(intermediate_cert)
    assert len(chain) == 0


def test_leaf_cannot_skip_intermediate(root_cert, leaf_cert):
    chain = ChainFile()
    chain.append(root_cert)
    with pytest.raises(ChainValidationError):
        chain.append(leaf_cert)
    assert chain.certificates == [root_cert]


def test_pem_is_root_first(root_cert, intermediate_cert):
    chain = ChainFile()
    chain.append(root_cert)
    chain.append(intermediate_cert)
    pem = chain.to_pem()
    assert pem.count(b"-----BEGIN CERTIFICATE-----") == 2
    assert pem.startswith(root_cert.public_bytes(Encoding.PEM))


def test_write_and_load(tmp_path, root_cert, intermediate_cert, leaf_cert):
    chain = ChainFile()
    for cert in (root_cert, intermediate_cert, leaf_cert):
        chain.append(cert)
    path = chain.write(tmp_path / "certificate_chain")
    loaded = ChainFile.load(path)
    assert loaded.certificates == chain.certificates


def test_load_rejects_wrong_order(tmp_path, root_cert, intermediate_cert):
    chain = ChainFile()
    chain.append(root_cert)
    chain.append(intermediate_cert)
    pem_blocks = chain.to_pem().split(b"-----END CERTIFICATE-----\n")
    reversed_pem = pem_blocks[1] + b"-----END CERTIFICATE-----\n" + pem_blocks[0] + b"-----END CERTIFICATE-----\n"
    path = tmp_path / "reversed"
    path.write_bytes(reversed_pem)
    with pytest.raises(ChainValidationError):
        ChainFile.load(path)
